from pathlib import Path

import pytest

from sheaf_core.config import CollectionConfigCache, load_site_config
from sheaf_core.errors import ConfigError
from tests.framework import site, write_file


def _posts(i18n=None, **extra):
    return site(
        {
            "i18n": {"locales": ["en", "fr"], **(i18n or {})},
            "collections": [{"name": "posts", "folder": "content/posts", "i18n": True, **extra}],
        }
    )


def _regex(site_config):
    return CollectionConfigCache(site_config).get_file_config("posts").full_path_regex


def test_multiple_folders_regex():
    regex = _regex(_posts({"structure": "multiple_folders"}))
    m = regex.match("content/posts/fr/hello.md")
    assert m.group("sub_path") == "hello"
    assert m.group("locale") == "fr"
    assert regex.match("content/posts/hello.md") is None
    assert regex.match("content/posts/es/hello.md") is None


def test_multiple_files_regex():
    regex = _regex(_posts({"structure": "multiple_files"}))
    m = regex.match("content/posts/hello.fr.md")
    assert (m.group("sub_path"), m.group("locale")) == ("hello", "fr")
    assert regex.match("content/posts/hello.md") is None


def test_multiple_files_regex_with_default_locale_omitted():
    regex = _regex(
        _posts({"structure": "multiple_files", "omit_default_locale_from_filename": True})
    )
    m = regex.match("content/posts/hello.md")
    assert (m.group("sub_path"), m.group("locale")) == ("hello", None)
    m = regex.match("content/posts/hello.fr.md")
    assert (m.group("sub_path"), m.group("locale")) == ("hello", "fr")


def test_root_multi_folder_regex():
    regex = _regex(_posts({"structure": "multiple_folders_i18n_root"}))
    m = regex.match("fr/content/posts/hello.md")
    assert (m.group("sub_path"), m.group("locale")) == ("hello", "fr")


def test_path_template_regex_escapes_literals():
    config = site(
        {"collections": [{"name": "posts", "folder": "posts", "path": "{{year}}.{{slug}}/index"}]}
    )
    regex = _regex(config)
    assert regex.match("posts/2024.hello/index.md").group("sub_path") == "2024.hello/index"
    assert regex.match("posts/2024xhello/index.md") is None


def test_index_file_alternative():
    config = site(
        {
            "collections": [
                {"name": "posts", "folder": "posts", "path": "{{slug}}/index", "index_file": True}
            ]
        }
    )
    file_config = CollectionConfigCache(config).get_file_config("posts")
    assert file_config.index_file_name == "_index"
    assert file_config.full_path_regex.match("posts/_index.md").group("sub_path") == "_index"


def test_file_config_for_collection_file():
    config = site(
        {"collections": [{"name": "data", "files": [{"name": "settings", "file": "/data/settings.yml"}]}]}
    )
    file_config = CollectionConfigCache(config).get_file_config("data", "settings")
    assert file_config.extension == "yml"
    assert file_config.format == "yaml"
    assert file_config.full_path == "data/settings.yml"
    assert file_config.full_path_regex is None


def test_config_cache_memoizes_and_invalidates():
    cache = CollectionConfigCache(_posts())
    first = cache.get_file_config("posts")
    assert cache.get_file_config("posts") is first

    cache.invalidate(_posts(extension="markdown"))
    second = cache.get_file_config("posts")
    assert second is not first
    assert second.extension == "markdown"


def test_config_cache_unknown_names():
    cache = CollectionConfigCache(_posts())
    with pytest.raises(ConfigError):
        cache.get_file_config("missing")
    with pytest.raises(ConfigError):
        cache.get_file_config("posts", "nope")


def test_load_site_config(tmp_path: Path):
    path = tmp_path / "admin" / "config.yml"
    write_file(
        path,
        "\n".join(
            [
                "media_folder: static/uploads",
                "i18n:",
                "  structure: multiple_folders",
                "  locales: [en, fr]",
                "collections:",
                "  - name: posts",
                "    folder: content/posts",
                "    i18n: true",
                "",
            ]
        ),
    )
    config = load_site_config(path)
    assert config.media_folder == "static/uploads"
    assert config.i18n.locales == ["en", "fr"]
    assert config.collections[0].i18n is True


def test_load_site_config_errors(tmp_path: Path):
    with pytest.raises(ConfigError):
        load_site_config(tmp_path / "missing.yml")

    bad = tmp_path / "bad.yml"
    write_file(bad, "collections: nope\n")
    with pytest.raises(ConfigError):
        load_site_config(bad)

    broken = tmp_path / "broken.yml"
    write_file(broken, "collections: [\n")
    with pytest.raises(ConfigError):
        load_site_config(broken)
