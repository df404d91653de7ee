"""Exception hierarchy shared by every headscan package.

Remote failures abort the discovery pass that hit them. Capability gaps and
best-effort lookups never raise; they are logged and degrade instead.
"""

from __future__ import annotations


class HeadscanError(Exception):
    """Base class for all headscan errors."""


class RemoteError(HeadscanError):
    """A call to the remote repository API failed or returned malformed data."""


class NotFoundError(RemoteError):
    """The remote API reported that the requested object does not exist."""


class CapabilityError(HeadscanError):
    """The remote server cannot provide a feature the policy insists on."""


class SessionClosedError(HeadscanError):
    """A discovery session was used after close()."""
