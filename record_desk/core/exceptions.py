class RecordDeskError(Exception):
    """Base exception for all record_desk errors"""
    pass


class ConfigError(RecordDeskError):
    """Invalid or inconsistent global.json or environment configuration"""
    pass


class UnknownAppError(RecordDeskError, KeyError):
    """No app definition registered under the requested id"""
    pass


class UnknownCollectionError(RecordDeskError, KeyError):
    """The app has no collection with the requested name"""
    pass


class StorageReadError(RecordDeskError):
    """
    A persisted payload could not be turned back into a collection:
    invalid JSON, or JSON that is not a list of objects
    """
    pass
