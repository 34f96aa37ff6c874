class WatchError(Exception):
    """Base class for failures that abort (or degrade) a monitoring run."""
    pass


class AcquisitionFailure(WatchError):
    """The page did not load, or the service list never appeared."""
    pass


class CorruptSnapshot(WatchError):
    """A stored snapshot could not be read or failed strict decoding."""
    pass


class StorageWriteFailure(WatchError):
    pass


class DeliveryFailure(WatchError):
    """Webhook post failed. Non-fatal: the run logs it and carries on."""
    pass
