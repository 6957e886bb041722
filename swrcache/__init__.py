from swrcache._config import CacheOptions as CacheOptions
from swrcache._core._classify import (
    is_navigation as is_navigation,
    is_script as is_script,
    is_stylesheet as is_stylesheet,
    should_handle as should_handle,
)
from swrcache._core._freshness import get_age as get_age, is_fresh as is_fresh
from swrcache._core._headers import FETCHED_ON_HEADER as FETCHED_ON_HEADER, Headers as Headers
from swrcache._core._keygen import make_cache_key as make_cache_key, normalize_url as normalize_url
from swrcache._core._links import extract_prefetch_targets as extract_prefetch_targets
from swrcache._core._storages import (
    AsyncBaseStorage as AsyncBaseStorage,
    AsyncInMemoryStorage as AsyncInMemoryStorage,
    AsyncSqliteStorage as AsyncSqliteStorage,
)
from swrcache._core.models import (
    Entry as Entry,
    Request as Request,
    RequestMetadata as RequestMetadata,
    Response as Response,
    ResponseMetadata as ResponseMetadata,
)
from swrcache._exceptions import SWRCacheError as SWRCacheError, StorageError as StorageError
from swrcache._async_cache import AsyncCacheProxy as AsyncCacheProxy

__all__ = (
    ## Models
    "Request",
    "Response",
    "Entry",
    "RequestMetadata",
    "ResponseMetadata",
    ## Headers
    "Headers",
    "FETCHED_ON_HEADER",
    ## Freshness and keys
    "get_age",
    "is_fresh",
    "make_cache_key",
    "normalize_url",
    ## Prefetching
    "extract_prefetch_targets",
    ## Classification
    "is_navigation",
    "is_stylesheet",
    "is_script",
    "should_handle",
    ## Storages
    "AsyncBaseStorage",
    "AsyncInMemoryStorage",
    "AsyncSqliteStorage",
    ## Errors
    "SWRCacheError",
    "StorageError",
    ## Proxy
    "CacheOptions",
    "AsyncCacheProxy",
)
