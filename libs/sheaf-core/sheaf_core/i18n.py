"""Resolve the effective i18n configuration of collections and collection files."""

import logging
import re
from typing import Any

from sheaf_core.models import (
    SINGLETONS_COLLECTION_NAME,
    CanonicalSlug,
    Collection,
    CollectionFile,
    I18nConfig,
    I18nOptions,
)

logger = logging.getLogger(__name__)

DEFAULT_LOCALE_KEY = "_default"
LOCALE_PLACEHOLDER = "{{locale}}"

_LOCALE_SUFFIX_RE = re.compile(r"\.\{\{locale\}\}(\.[A-Za-z0-9]+)$")


def _explicit_options(value: bool | I18nOptions | None) -> dict[str, Any]:
    """Options written at one level; `true` inherits everything."""
    if isinstance(value, I18nOptions):
        return value.model_dump(exclude_unset=True)
    return {}


def resolve_i18n_config(
    site_i18n: I18nOptions | None,
    collection: Collection,
    file: CollectionFile | None = None,
) -> I18nConfig:
    """
    Merge site, collection and file i18n options into an `I18nConfig`.

    Each level overrides the keys it sets explicitly. A collection (and, for
    file collections, the file) has to opt in; otherwise the disabled
    configuration with the single ``_default`` locale is returned.
    """
    if not collection.i18n and collection.name != SINGLETONS_COLLECTION_NAME:
        return I18nConfig()
    if file is not None and not file.i18n:
        return I18nConfig()

    merged = {**_explicit_options(site_i18n), **_explicit_options(collection.i18n)}
    if file is not None:
        merged.update(_explicit_options(file.i18n))
    options = I18nOptions(**merged)

    locales = list(dict.fromkeys(options.locales))
    if not locales:
        return I18nConfig()

    default_locale = options.default_locale if options.default_locale in locales else locales[0]

    if file is not None:
        # A single named file only spans several files when its path is localized
        structure = "multiple_files" if LOCALE_PLACEHOLDER in file.file else "single_file"
    else:
        structure = options.structure
        if structure == "multiple_folders_i18n_root":
            logger.warning(
                f"Collection '{collection.name}': i18n structure 'multiple_folders_i18n_root' "
                "is deprecated, use 'multiple_folders' with locale folders at the root"
            )

    initial = options.initial_locales
    if initial is None or initial == "all":
        initial_locales = locales
    elif initial == "default":
        initial_locales = [default_locale]
    else:
        initial_locales = [loc for loc in locales if loc == default_locale or loc in initial]

    if file is not None:
        omit_default = bool(_LOCALE_SUFFIX_RE.search(file.file))
    else:
        omit_default = structure == "multiple_files"
    omit_default = options.omit_default_locale_from_filename and omit_default

    canonical = options.canonical_slug
    defaults = CanonicalSlug()

    return I18nConfig(
        i18n_enabled=True,
        structure=structure,
        all_locales=tuple(locales),
        default_locale=default_locale,
        initial_locales=tuple(initial_locales),
        save_all_locales=options.save_all_locales and options.initial_locales is None,
        canonical_slug=CanonicalSlug(
            key=(canonical.key if canonical and canonical.key else defaults.key),
            value=(canonical.value if canonical and canonical.value else defaults.value),
        ),
        omit_default_locale_from_filename=omit_default,
    )


class I18nConfigResolver:
    """Resolve i18n configs against one site configuration."""

    def __init__(self, site_i18n: I18nOptions | None):
        self.site_i18n = site_i18n

    def resolve(self, collection: Collection, file: CollectionFile | None = None) -> I18nConfig:
        return resolve_i18n_config(self.site_i18n, collection, file)


def get_locale_path(i18n: I18nConfig, locale: str, path: str) -> str:
    """Fill the ``{{locale}}`` placeholder of a file path for one locale."""
    if i18n.omit_default_locale_from_filename and locale == i18n.default_locale:
        path = _LOCALE_SUFFIX_RE.sub(r"\1", path)
    return path.replace(LOCALE_PLACEHOLDER, locale)
