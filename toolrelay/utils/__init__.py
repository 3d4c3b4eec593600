from .helper_functions import (
    JsonObject,
    as_record,
    as_string,
    get_package_directory,
    records,
    to_string_list,
)

__all__ = [
    "JsonObject",
    "as_record",
    "as_string",
    "get_package_directory",
    "records",
    "to_string_list",
]
