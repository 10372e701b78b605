"""Error taxonomy for the sampling pipeline."""


class HeatTrailError(Exception):
    """Base class for all errors raised by heattrail."""


class ProviderUnavailable(HeatTrailError):
    """The location service is disabled on the host."""


class PermissionDenied(HeatTrailError):
    """The host refused access to location fixes."""


class FixAcquisitionFailed(HeatTrailError):
    """A fix could not be obtained right now (transient)."""


class PersistenceFailure(HeatTrailError):
    """The persistence gateway could not read or write a key."""


class MalformedRecord(HeatTrailError):
    """A single serialized sample could not be decoded."""
