import msgspec


class CategoryView(msgspec.Struct):
    id: int
    name: str
    slug: str


class EntityView(msgspec.Struct):
    id: int
    category_id: int
    name: str
    slug: str
    description: str | None = None
    details: str | None = None
    base_image: str | None = None
    mod_count: int = 0


class AssetView(msgspec.Struct):
    """
    An asset as presented to callers.

    `is_enabled` and `folder_name` are derived from the filesystem when the
    view is built; neither is stored in the catalog.
    """

    id: int
    entity_id: int
    name: str
    folder_name: str
    is_enabled: bool
    description: str | None = None
    image_filename: str | None = None
    author: str | None = None
    category_tag: str | None = None


class DescriptorMetadata(msgspec.Struct, omit_defaults=True):
    """Values read from a mod's descriptor (.ini) file."""

    name: str | None = None
    author: str | None = None
    description: str | None = None
    target: str | None = None
    type: str | None = None


class DeducedInfo(msgspec.Struct):
    entity_slug: str
    mod_name: str
    mod_type_tag: str | None = None
    author: str | None = None
    description: str | None = None
    image_filename: str | None = None


class ArchiveEntry(msgspec.Struct):
    path: str
    is_dir: bool
    is_likely_mod_root: bool = False


class ArchiveAnalysisResult(msgspec.Struct):
    file_path: str
    entries: list[ArchiveEntry] = msgspec.field(default_factory=list)
    deduced_mod_name: str | None = None
    deduced_author: str | None = None
    deduced_category_slug: str | None = None
    deduced_entity_slug: str | None = None
    # Unmapped descriptor values, e.g. "Character" / "Raiden Shogun"
    raw_ini_type: str | None = None
    raw_ini_target: str | None = None
    detected_preview_internal_path: str | None = None


class ScanProgress(msgspec.Struct, rename="camel"):
    processed_count: int
    total_count: int
    current_path: str | None
    message: str


class ScanSummary(msgspec.Struct):
    processed: int = 0
    added: int = 0
    errors: int = 0
