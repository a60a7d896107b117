"""Tests for the command line entry point."""

import json

import pytest

from woo_merge.cli import main, parse_args

from conftest import FakeCatalog


@pytest.fixture
def config_file(tmp_path, flavor_config_data):
    flavor_config_data["options"]["auto_delete_config"] = True
    path = tmp_path / "aro.json"
    path.write_text(json.dumps(flavor_config_data), encoding="utf-8")
    return path


def test_parse_args_defaults():
    args = parse_args(["--config", "merge.json"])

    assert args.config == "merge.json"
    assert args.dry_run is False
    assert args.keep_config is False
    assert args.report is None


def test_config_is_required():
    with pytest.raises(SystemExit) as excinfo:
        parse_args([])
    assert excinfo.value.code == 2


def test_dry_run_keeps_config_and_writes_nothing(config_file, flavor_products, capsys):
    catalog = FakeCatalog(flavor_products)

    code = main(["--config", str(config_file), "--dry-run"], catalog=catalog)

    assert code == 0
    assert config_file.exists()
    assert catalog.calls == []
    assert "DRY-RUN" in capsys.readouterr().out


def test_live_run_deletes_config(config_file, flavor_products, capsys):
    catalog = FakeCatalog(flavor_products)

    code = main(["--config", str(config_file)], catalog=catalog)

    assert code == 0
    assert not config_file.exists()
    assert len(catalog.variable_products) == 1
    assert "Config deleted" in capsys.readouterr().out


def test_keep_config_flag(config_file, flavor_products):
    code = main(["--config", str(config_file), "--keep-config"], catalog=FakeCatalog(flavor_products))

    assert code == 0
    assert config_file.exists()


def test_report_written(config_file, flavor_products, tmp_path):
    report = tmp_path / "reports" / "merge.txt"

    code = main(
        ["--config", str(config_file), "--dry-run", "--report", str(report)],
        catalog=FakeCatalog(flavor_products),
    )

    assert code == 0
    text = report.read_text(encoding="utf-8")
    assert "WOOCOMMERCE PRODUCT MERGE REPORT" in text
    assert "Mode: DRY RUN" in text
    assert "Would create variation: 🍊 Orange" in text


def test_no_sources_found_fails(config_file, capsys):
    code = main(["--config", str(config_file)], catalog=FakeCatalog([]))

    assert code == 1
    assert config_file.exists()
    assert "Merge aborted" in capsys.readouterr().out


def test_store_error_reports_partial_state(config_file, flavor_products, capsys):
    catalog = FakeCatalog(flavor_products)
    catalog.fail_on.add("update_product_meta")

    code = main(["--config", str(config_file)], catalog=catalog)

    out = capsys.readouterr().out
    assert code == 1
    assert config_file.exists()
    assert "Store error" in out
    assert "partial variable product" in out


def test_invalid_config_fails(tmp_path, capsys):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"variable_product": {"name": "X"}, "attributes": []}), encoding="utf-8")

    code = main(["--config", str(path)], catalog=FakeCatalog([]))

    assert code == 1
    assert "Configuration error" in capsys.readouterr().out


def test_missing_credentials_fail(config_file, monkeypatch, capsys):
    for name in ("WOO_URL", "WOO_CONSUMER_KEY", "WOO_CONSUMER_SECRET"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("woo_merge.config.WORKSPACE", config_file.parent)

    code = main(["--config", str(config_file)])

    assert code == 1
    assert "Missing store env vars" in capsys.readouterr().out
