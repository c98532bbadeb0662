PACKAGE_METADATA_FILE = "prefab.json"
MODULE_METADATA_FILE = "module.json"
ABI_METADATA_FILE = "abi.json"

MODULES_DIR = "modules"
LIBS_DIR = "libs"
INCLUDE_DIR = "include"

STATIC_LIBRARY_SUFFIX = ".a"
SHARED_LIBRARY_SUFFIX = ".so"

DEFAULT_PLATFORM = "android"
DEFAULT_AUDIT_LOG = "stderr"
