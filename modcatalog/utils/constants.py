from enum import Enum


class ModState(str, Enum):
    ENABLED = "Enabled"
    DISABLED = "Disabled"
    MISSING = "Missing"


APP_NAME = "ModCatalog"
DB_NAME = "app_data.sqlite"
DATA_DIR_ENV_VAR = "MODCATALOG_DATA_DIR"

# Settings table keys
SETTINGS_KEY_MODS_FOLDER = "mods_folder_path"
SETTINGS_KEY_DEFAULT_CATEGORY = "default_category_slug"
DEFAULT_FALLBACK_CATEGORY = "characters"

# Taxonomy
OTHER_ENTITY_SUFFIX = "-other"
OTHER_ENTITY_NAME = "Other/Unknown"
OTHER_ENTITY_DESCRIPTION = "Uncategorized assets."
DEFAULT_ENTITY_DETAILS = "{}"

# Mod folders
DISABLED_PREFIX = "DISABLED_"
DESCRIPTOR_EXTENSION = ".ini"
TARGET_IMAGE_FILENAME = "preview.png"

# Conventional preview names, in priority order
FOLDER_PREVIEW_CANDIDATES = [
    "preview.png",
    "preview.jpg",
    "icon.png",
    "icon.jpg",
    "thumbnail.png",
    "thumbnail.jpg",
]
ARCHIVE_PREVIEW_CANDIDATES = [
    "preview.png",
    "icon.png",
    "thumbnail.png",
    "preview.jpg",
    "icon.jpg",
    "thumbnail.jpg",
]

# Descriptor sections and field aliases, tried in order. For every field the
# last section that defines it wins.
DESCRIPTOR_SECTIONS = ["Mod", "Settings", "Info", "General"]
DESCRIPTOR_FIELD_ALIASES: dict[str, list[str]] = {
    "name": ["Name", "ModName"],
    "author": ["Author"],
    "description": ["Description"],
    "target": ["Target", "Entity", "Character"],
    "type": ["Type", "Category"],
}

MOD_NAME_CLEANUP_PATTERN = r"(_v\d+(\.\d+)*|_DISABLED|DISABLED_|\(disabled\))"

# Scan notifications
SCAN_STARTING_MESSAGE = "Starting scan..."
