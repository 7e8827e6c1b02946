from sheaf_core.i18n import I18nConfigResolver, get_locale_path, resolve_i18n_config
from sheaf_core.models import Collection, CollectionFile, I18nConfig, I18nOptions

SITE = I18nOptions(locales=["en", "fr", "de"])


def test_disabled_when_collection_does_not_opt_in():
    config = resolve_i18n_config(SITE, Collection(name="posts", folder="posts"))
    assert config.i18n_enabled is False
    assert config.all_locales == ("_default",)
    assert config.default_locale == "_default"
    assert config.structure == "single_file"
    assert config.canonical_slug.key == "translationKey"
    assert config.canonical_slug.value == "{{slug}}"


def test_collection_true_inherits_site_options():
    config = resolve_i18n_config(SITE, Collection(name="posts", folder="posts", i18n=True))
    assert config.i18n_enabled is True
    assert config.all_locales == ("en", "fr", "de")
    assert config.default_locale == "en"
    assert config.structure == "single_file"
    assert config.save_all_locales is True


def test_collection_overrides_only_keys_it_sets():
    site = I18nOptions(locales=["en", "fr"], default_locale="fr", structure="multiple_files")
    collection = Collection(
        name="posts", folder="posts", i18n=I18nOptions(structure="multiple_folders")
    )
    config = resolve_i18n_config(site, collection)
    assert config.structure == "multiple_folders"
    assert config.default_locale == "fr"
    assert config.all_locales == ("en", "fr")


def test_collection_locales_without_site_i18n():
    collection = Collection(name="posts", folder="posts", i18n=I18nOptions(locales=["ja", "en"]))
    config = resolve_i18n_config(None, collection)
    assert config.i18n_enabled is True
    assert config.default_locale == "ja"


def test_unknown_default_locale_falls_back_to_first():
    site = I18nOptions(locales=["en", "fr"], default_locale="es")
    config = resolve_i18n_config(site, Collection(name="posts", folder="posts", i18n=True))
    assert config.default_locale == "en"
    assert config.default_locale in config.all_locales


def test_initial_locales_variants():
    def resolve(initial):
        site = I18nOptions(locales=["en", "fr", "de"], initial_locales=initial)
        return resolve_i18n_config(site, Collection(name="p", folder="p", i18n=True))

    assert resolve(None).initial_locales == ("en", "fr", "de")
    assert resolve("all").initial_locales == ("en", "fr", "de")
    assert resolve("default").initial_locales == ("en",)
    # Default locale is always included, order follows the locale list
    assert resolve(["de"]).initial_locales == ("en", "de")
    assert resolve(["de"]).save_all_locales is False
    assert resolve(None).save_all_locales is True


def test_collection_file_is_coerced_to_single_file():
    collection = Collection(
        name="data",
        files=[CollectionFile(name="settings", file="data/settings.yml", i18n=True)],
        i18n=I18nOptions(structure="multiple_folders"),
    )
    config = resolve_i18n_config(SITE, collection, collection.files[0])
    assert config.i18n_enabled is True
    assert config.structure == "single_file"


def test_localized_file_path_uses_multiple_files():
    collection = Collection(
        name="pages",
        files=[CollectionFile(name="about", file="content/about.{{locale}}.md", i18n=True)],
        i18n=True,
    )
    config = resolve_i18n_config(SITE, collection, collection.files[0])
    assert config.structure == "multiple_files"


def test_file_without_i18n_is_disabled():
    collection = Collection(
        name="data",
        files=[CollectionFile(name="settings", file="data/settings.yml")],
        i18n=True,
    )
    config = resolve_i18n_config(SITE, collection, collection.files[0])
    assert config == I18nConfig()


def test_canonical_slug_override():
    site = I18nOptions(locales=["en"], canonical_slug={"key": "ref"})
    config = resolve_i18n_config(site, Collection(name="p", folder="p", i18n=True))
    assert config.canonical_slug.key == "ref"
    assert config.canonical_slug.value == "{{slug}}"


def test_omit_default_locale_only_for_multiple_files():
    site = I18nOptions(locales=["en", "fr"], omit_default_locale_from_filename=True)
    multi_file = Collection(name="p", folder="p", i18n=I18nOptions(structure="multiple_files"))
    multi_folder = Collection(name="p", folder="p", i18n=I18nOptions(structure="multiple_folders"))
    assert resolve_i18n_config(site, multi_file).omit_default_locale_from_filename is True
    assert resolve_i18n_config(site, multi_folder).omit_default_locale_from_filename is False


def test_get_locale_path():
    config = I18nConfig(
        i18n_enabled=True,
        structure="multiple_files",
        all_locales=("en", "fr"),
        default_locale="en",
        omit_default_locale_from_filename=True,
    )
    assert get_locale_path(config, "en", "content/about.{{locale}}.md") == "content/about.md"
    assert get_locale_path(config, "fr", "content/about.{{locale}}.md") == "content/about.fr.md"
    assert get_locale_path(config, "en", "content/{{locale}}/about.md") == "content/en/about.md"


def test_resolver_uses_site_options():
    resolver = I18nConfigResolver(SITE)
    config = resolver.resolve(Collection(name="posts", folder="posts", i18n=True))
    assert config.all_locales == ("en", "fr", "de")
