__all__ = ("SWRCacheError", "StorageError")


class SWRCacheError(Exception): ...


class StorageError(SWRCacheError): ...
