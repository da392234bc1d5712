import json
from pathlib import Path

import pytest
import toml

from serverless_bundler.config import BundlerSettings
from serverless_bundler.core.redirects import GENERATED_BY_KEY
from serverless_bundler.exceptions import ConfigurationError, IOFailure, RouteConflict
from serverless_bundler.plugin import (
    NoopBuildListener,
    ServerlessBundlerPlugin,
    SiteDirectories,
    add_serverless_plugin,
    dispatch_build,
)

CLI = BundlerSettings(BUILD_SOURCE="cli")


@pytest.fixture
def site(tmp_path: Path, monkeypatch) -> Path:
    """A small site laid out like a real project, with cwd at its root."""
    monkeypatch.chdir(tmp_path)
    files = {
        "site_config.py": "import markdown\nimport yaml\n",
        "src/_data/site.json": '{"title": "Test"}',
        "src/_data/menu.py": "import requests\n",
        "src/_includes/base.html": "<html>{{ content }}</html>",
        "src/_layouts/post.html": "<article>{{ content }}</article>",
        "src/a.md": "# A",
        "src/b.md": "# B",
        "src/static.md": "# Static",
    }
    for rel, content in files.items():
        path = tmp_path / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return tmp_path


TEMPLATE_MAP = [
    {"inputPath": "./src/static.md", "serverless": {}},
    {"inputPath": "./src/a.md", "serverless": {"site": ["/a/", "/a/2/"]}},
    {"inputPath": "./src/b.md", "serverless": {"site": "/b/"}},
]

DIRECTORIES = {"data": "src/_data", "includes": "src/_includes", "layouts": "src/_layouts"}


async def _run(listener, template_map=TEMPLATE_MAP, directories=DIRECTORIES):
    await dispatch_build(
        listener,
        config_path="site_config.py",
        global_data_files=["src/_data/menu.py"],
        directories=directories,
        template_map=template_map,
    )


class TestAddServerlessPlugin:
    def test_missing_name_fails_before_writing(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        with pytest.raises(ConfigurationError):
            add_serverless_plugin({}, settings=CLI)
        with pytest.raises(ConfigurationError):
            add_serverless_plugin({"name": ""}, settings=CLI)
        assert list(tmp_path.iterdir()) == []

    def test_non_cli_build_is_noop(self):
        listener = add_serverless_plugin({"name": "site"}, settings=BundlerSettings(BUILD_SOURCE=""))

        assert isinstance(listener, NoopBuildListener)

    def test_cli_build_returns_plugin(self):
        listener = add_serverless_plugin(
            {"name": "site", "functionsDir": "./netlify/functions/"}, settings=CLI
        )

        assert isinstance(listener, ServerlessBundlerPlugin)
        assert listener.options.functions_dir == "./netlify/functions/"

    def test_bad_redirects_option_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            add_serverless_plugin({"name": "site", "redirects": 42}, settings=CLI)

    def test_environment_enables_cli_build(self, monkeypatch):
        monkeypatch.setenv("BUILD_SOURCE", "cli")

        assert isinstance(add_serverless_plugin({"name": "site"}), ServerlessBundlerPlugin)


@pytest.mark.asyncio
async def test_noop_listener_writes_nothing(site: Path):
    listener = add_serverless_plugin({"name": "site"}, settings=BundlerSettings(BUILD_SOURCE="lib"))

    await _run(listener)

    assert not (site / "functions").exists()
    assert not (site / "netlify.toml").exists()


@pytest.mark.asyncio
async def test_full_build_assembles_bundle(site: Path):
    plugin = add_serverless_plugin({"name": "site", "excludeDependencies": ["yaml"]}, settings=CLI)

    await _run(plugin)

    bundle = site / "functions" / "site"
    assert (bundle / "bundler_modules.py").exists()
    assert (bundle / "site_config.py").read_text(encoding="utf-8").startswith("import markdown")
    assert "import markdown" in (bundle / "app_config_modules.py").read_text(encoding="utf-8")
    assert "import yaml" not in (bundle / "app_config_modules.py").read_text(encoding="utf-8")
    assert "import requests" in (bundle / "app_globaldata_modules.py").read_text(encoding="utf-8")
    assert (bundle / "src" / "_data" / "site.json").exists()
    assert (bundle / "src" / "_includes" / "base.html").exists()
    assert (bundle / "src" / "_layouts" / "post.html").exists()
    assert (bundle / "src" / "a.md").exists()
    assert (bundle / "src" / "b.md").exists()
    assert not (bundle / "src" / "static.md").exists()

    url_map = json.loads((bundle / "serverless-map.json").read_text(encoding="utf-8"))
    assert url_map == {"/a/": "./src/a.md", "/a/2/": "./src/a.md", "/b/": "./src/b.md"}

    redirects = toml.load(site / "netlify.toml")["redirects"]
    assert [r["from"] for r in redirects] == ["/b/", "/a/2/", "/a/"]
    assert {r["to"] for r in redirects} == {"/.netlify/functions/site"}
    assert {r[GENERATED_BY_KEY] for r in redirects} == {"site"}


@pytest.mark.asyncio
async def test_copy_count_matches_files_written(site: Path):
    plugin = add_serverless_plugin({"name": "site"}, settings=CLI)

    await _run(plugin)

    bundle = site / "functions" / "site"
    written = [p for p in bundle.rglob("*") if p.is_file()]
    # entry marker, config copy, 2 dependency markers, map json,
    # 2 data + 1 include + 1 layout, 2 input files
    assert plugin.helper.copy_count == 11
    assert plugin.helper.copy_count == len(written)


@pytest.mark.asyncio
async def test_second_build_resets_counter_and_is_stable(site: Path):
    plugin = add_serverless_plugin({"name": "site"}, settings=CLI)

    await _run(plugin)
    first_toml = (site / "netlify.toml").read_text(encoding="utf-8")
    await _run(plugin)

    assert plugin.helper.copy_count == 11
    assert (site / "netlify.toml").read_text(encoding="utf-8") == first_toml


@pytest.mark.asyncio
async def test_layouts_are_optional(site: Path):
    plugin = add_serverless_plugin({"name": "site"}, settings=CLI)

    await _run(plugin, directories=SiteDirectories(data="src/_data", includes="src/_includes"))

    assert not (site / "functions" / "site" / "src" / "_layouts").exists()


@pytest.mark.asyncio
async def test_missing_directory_fails_the_signal(site: Path):
    plugin = add_serverless_plugin({"name": "site"}, settings=CLI)
    await plugin.on_build_start()

    with pytest.raises(IOFailure):
        await plugin.on_directories_resolved({"data": "src/_nope", "includes": "src/_includes"})


@pytest.mark.asyncio
async def test_route_conflict_writes_no_map_or_redirects(site: Path):
    plugin = add_serverless_plugin({"name": "site"}, settings=CLI)
    conflicting = [
        {"inputPath": "./src/a.md", "serverless": {"site": "/x/"}},
        {"inputPath": "./src/b.md", "serverless": {"site": "/x/"}},
    ]

    with pytest.raises(RouteConflict):
        await plugin.on_template_map_resolved(conflicting)

    assert not (site / "functions" / "site" / "serverless-map.json").exists()
    assert not (site / "netlify.toml").exists()


@pytest.mark.asyncio
async def test_removed_routes_clear_own_redirects_only(site: Path):
    (site / "netlify.toml").write_text(
        toml.dumps(
            {
                "build": {"publish": "_site"},
                "redirects": [
                    {"from": "/old/", "to": "/.netlify/functions/site", "status": 200, GENERATED_BY_KEY: "site"},
                    {"from": "/g/", "to": "/.netlify/functions/g", "status": 200, GENERATED_BY_KEY: "g"},
                ],
            }
        ),
        encoding="utf-8",
    )
    plugin = add_serverless_plugin({"name": "site"}, settings=CLI)

    await plugin.on_template_map_resolved([])

    data = toml.load(site / "netlify.toml")
    assert [r["from"] for r in data["redirects"]] == ["/g/"]
    assert data["build"] == {"publish": "_site"}
    url_map = site / "functions" / "site" / "serverless-map.json"
    assert json.loads(url_map.read_text(encoding="utf-8")) == {}


@pytest.mark.asyncio
async def test_custom_redirects_callable_receives_output_map(site: Path):
    received = []
    plugin = add_serverless_plugin({"name": "site", "redirects": received.append}, settings=CLI)

    await plugin.on_template_map_resolved(TEMPLATE_MAP)

    assert received == [{"/a/": "./src/a.md", "/a/2/": "./src/a.md", "/b/": "./src/b.md"}]
    assert not (site / "netlify.toml").exists()


@pytest.mark.asyncio
async def test_extra_copy_targets(site: Path, capsys):
    (site / "_site").mkdir()
    (site / "_site" / "feed.xml").write_text("<feed/>", encoding="utf-8")
    (site / "assets").mkdir()
    (site / "assets" / "logo.svg").write_text("<svg/>", encoding="utf-8")
    plugin = add_serverless_plugin(
        {
            "name": "site",
            "copy": [
                "_site/feed.xml",
                {"from": "assets", "to": "public/assets"},
                {"from": "assets"},
            ],
        },
        settings=CLI,
    )
    await plugin.on_build_start()

    await plugin.on_build_end()

    bundle = site / "functions" / "site"
    assert (bundle / "_site" / "feed.xml").exists()
    assert (bundle / "public" / "assets" / "logo.svg").exists()
    assert not (bundle / "assets").exists()
    assert plugin.helper.copy_count == 3
    assert "3 files bundled to ./functions/site." in capsys.readouterr().out
