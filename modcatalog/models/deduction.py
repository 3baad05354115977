"""
Heuristic classification of an unstructured mod folder.

The same rules back the directory scanner and the archive analyzer: folder
names above the mod are matched against the taxonomy first, then the mod's
descriptor (.ini) file supplies metadata and weaker target/type hints. The
result always names a usable entity, falling back to a category's "other"
entity when nothing more specific matches.
"""

import configparser
import re
from pathlib import Path

from loguru import logger

from modcatalog.models.structures import DeducedInfo, DescriptorMetadata
from modcatalog.models.taxonomy import TaxonomyStore, other_entity_slug
from modcatalog.utils.constants import (
    DEFAULT_FALLBACK_CATEGORY,
    DESCRIPTOR_EXTENSION,
    DESCRIPTOR_FIELD_ALIASES,
    DESCRIPTOR_SECTIONS,
    FOLDER_PREVIEW_CANDIDATES,
    MOD_NAME_CLEANUP_PATTERN,
)

MOD_NAME_CLEANUP_REGEX = re.compile(MOD_NAME_CLEANUP_PATTERN, re.IGNORECASE)


def is_descriptor_name(filename: str) -> bool:
    return filename.lower().endswith(DESCRIPTOR_EXTENSION)


def find_descriptor(folder: Path) -> Path | None:
    """
    The descriptor file directly inside folder, if any.

    When several .ini files exist the first by name is used, so repeated
    calls on the same folder always read the same file.
    """
    try:
        candidates = sorted(
            child
            for child in folder.iterdir()
            if child.is_file() and is_descriptor_name(child.name)
        )
    except OSError as e:
        logger.warning(f"Could not list {folder}: {e}")
        return None
    return candidates[0] if candidates else None


def parse_descriptor(text: str) -> DescriptorMetadata:
    """
    Read metadata from descriptor text.

    Sections are visited in the fixed priority order; for every field the
    last visited section that defines it wins. Text that cannot be parsed
    yields empty metadata.
    """
    parser = configparser.ConfigParser(
        interpolation=None, strict=False, allow_no_value=True
    )
    try:
        parser.read_string(text)
    except configparser.MissingSectionHeaderError as e:
        logger.debug(f"Descriptor could not be parsed: {e}")
        return DescriptorMetadata()
    except configparser.ParsingError as e:
        # Sections read before the bad lines are still usable
        logger.debug(f"Descriptor has unparsable lines: {e}")
    except configparser.Error as e:
        logger.debug(f"Descriptor could not be parsed: {e}")
        return DescriptorMetadata()

    values: dict[str, str] = {}
    for section in DESCRIPTOR_SECTIONS:
        if not parser.has_section(section):
            continue
        for field, aliases in DESCRIPTOR_FIELD_ALIASES.items():
            for alias in aliases:
                value = parser.get(section, alias, fallback=None)
                if value is not None:
                    values[field] = value.strip()
                    break

    return DescriptorMetadata(**values)


def read_descriptor(path: Path) -> DescriptorMetadata:
    try:
        text = path.read_text(encoding="utf-8-sig", errors="replace")
    except OSError as e:
        logger.warning(f"Could not read descriptor {path}: {e}")
        return DescriptorMetadata()
    return parse_descriptor(text)


def clean_mod_name(name: str, fallback: str) -> str:
    """Strip version and disabled markers; an empty result reverts to fallback."""
    cleaned = MOD_NAME_CLEANUP_REGEX.sub("", name).strip()
    return cleaned or fallback


def find_preview_image(folder: Path) -> str | None:
    """The first conventional preview file directly inside folder (case-insensitive)."""
    try:
        files = {
            child.name.lower(): child.name for child in folder.iterdir() if child.is_file()
        }
    except OSError:
        return None
    for candidate in FOLDER_PREVIEW_CANDIDATES:
        if candidate in files:
            return files[candidate]
    return None


def resolve_fallback_category(store: TaxonomyStore, preferred: str) -> str:
    """
    The category used when neither folders nor descriptor identify one.

    :param store: The taxonomy the deduction runs against.
    :param preferred: The configured default category slug.
    :return: preferred if it exists, else the first category by slug, else
        the built-in default (which then has no matching entity).
    """
    if store.has_category(preferred):
        return preferred
    slugs = store.category_slugs
    if slugs:
        logger.warning(
            f"Default category '{preferred}' not in taxonomy, falling back to '{slugs[0]}'"
        )
        return slugs[0]
    return DEFAULT_FALLBACK_CATEGORY


def _ancestors_below_root(folder: Path, root: Path) -> list[Path]:
    """Ancestors of folder strictly below root, nearest first."""
    ancestors = []
    current = folder.parent
    while current != root and current.is_relative_to(root) and current != current.parent:
        ancestors.append(current)
        current = current.parent
    return ancestors


def deduce(
    folder: Path,
    root: Path,
    store: TaxonomyStore,
    default_category: str = DEFAULT_FALLBACK_CATEGORY,
) -> DeducedInfo:
    """
    Classify a mod folder and collect its metadata.

    :param folder: The mod root directory.
    :param root: The managed root folder.
    :param store: Taxonomy lookup tables.
    :param default_category: Category used when nothing matches.
    :return: The deduced placement and metadata. Never raises for a
        folder that exists.
    """
    folder_name = folder.name
    entity_slug: str | None = None
    category_slug: str | None = None
    category_is_exact_slug = False

    for ancestor in _ancestors_below_root(folder, root):
        if entity_slug is None:
            entity_slug = store.match_entity(ancestor.name)
        # Slug matches keep overwriting so the one nearest the root wins; a
        # name match never replaces a slug match
        if store.has_category(ancestor.name):
            category_slug = ancestor.name
            category_is_exact_slug = True
        elif not category_is_exact_slug:
            category_match = store.match_category(ancestor.name)
            if category_match is not None:
                category_slug = category_match

    metadata = DescriptorMetadata()
    descriptor = find_descriptor(folder)
    if descriptor is not None:
        metadata = read_descriptor(descriptor)

    if entity_slug is None and metadata.target:
        entity_slug = store.match_entity(metadata.target)
    if category_slug is None and metadata.type:
        category_slug = store.match_category(metadata.type)

    if entity_slug is not None:
        resolved = entity_slug
    elif category_slug is not None:
        resolved = other_entity_slug(category_slug)
    else:
        resolved = other_entity_slug(resolve_fallback_category(store, default_category))

    info = DeducedInfo(
        entity_slug=resolved,
        mod_name=clean_mod_name(metadata.name or folder_name, folder_name),
        mod_type_tag=metadata.type,
        author=metadata.author,
        description=metadata.description,
        image_filename=find_preview_image(folder),
    )
    logger.debug(f"Deduced {folder_name}: entity={info.entity_slug}, name={info.mod_name}")
    return info
