from __future__ import annotations

import io
from pathlib import Path

from PIL import Image

from outreach.cli import main
from outreach.config import load_config
from outreach.store import JsonCompanyStore


def _store(config_path: Path) -> JsonCompanyStore:
    return JsonCompanyStore(load_config(config_path).paths.store_dir)


def test_seed_is_idempotent(config_path: Path) -> None:
    args = ["seed", "--config", str(config_path)]
    assert main(args) == 0
    assert main(args) == 0
    assert [c.name for c in _store(config_path).list()] == ["Alpha Mining", "Beta Mining"]
    assert main(["list", "--config", str(config_path)]) == 0


def test_edit_commands(config_path: Path) -> None:
    cfg = ["--config", str(config_path)]
    assert main(["create", *cfg, "Acme"]) == 0
    company = _store(config_path).list()[0]

    assert main(["toggle-country", *cfg, company.id, "Alpha"]) == 0
    assert main(["add-pin", *cfg, company.id, "HQ", "-26.2", "28.0", "--type", "office"]) == 0
    pin_id = _store(config_path).get(company.id).locations[0].id
    assert main(["move-pin", *cfg, company.id, pin_id, "10", "20"]) == 0
    assert main(["set-metric", *cfg, company.id, "2024", "ebitda", "15"]) == 0
    assert main(["add-chart", *cfg, company.id, "revenue", "Revenue", "Revenue (R Billion)"]) == 0

    saved = _store(config_path).get(company.id)
    assert saved.highlighted_countries == ("Alpha",)
    assert (saved.locations[0].lat, saved.locations[0].lng) == (10.0, 20.0)
    assert saved.production_data[-1].value("ebitda") == 15.0
    assert saved.charts[-1].title == "Revenue"

    assert main(["move-pin", *cfg, company.id, "missing", "1", "1"]) == 1
    assert main(["set-metric", *cfg, company.id, "1990", "ebitda", "1"]) == 1
    assert main(["toggle-country", *cfg, "nobody", "Alpha"]) == 1


def test_upload_outputs_and_compare(config_path: Path, tmp_path: Path) -> None:
    cfg = ["--config", str(config_path)]
    assert main(["create", *cfg, "Acme"]) == 0
    company = _store(config_path).list()[0]

    image_path = tmp_path / "logo.png"
    buffer = io.BytesIO()
    Image.new("RGB", (64, 32), (0, 0, 255)).save(buffer, format="PNG")
    image_path.write_bytes(buffer.getvalue())
    assert main(["upload-image", *cfg, company.id, str(image_path)]) == 0
    assert _store(config_path).get(company.id).logo_url.startswith("file://")

    executive = company.executives[0]
    assert main(["upload-image", *cfg, company.id, str(image_path), "--executive", executive.id]) == 0
    assert main(["upload-image", *cfg, company.id, str(image_path), "--executive", "nope"]) == 1

    assert main(["render-map", *cfg, company.id]) == 0
    assert main(["render-charts", *cfg, company.id]) == 0
    assert main(["preview", *cfg, company.id]) == 0
    assert main(["compare", *cfg]) == 0
    assert main(["compare", *cfg, "--metric", "Unknown"]) == 1
    assert main(["validate", *cfg]) == 0

    output_dir = load_config(config_path).paths.output_dir
    assert (output_dir / company.id / "index.html").exists()
    assert (output_dir / "compare_ebitda_trend.csv").exists()

    assert main(["delete", *cfg, company.id]) == 0
    assert main(["delete", *cfg, company.id]) == 1


def test_store_failures_are_reported_not_raised(config_path: Path, tmp_path: Path) -> None:
    cfg = ["--config", str(config_path)]
    assert main(["create", *cfg, "Acme"]) == 0
    store_dir = load_config(config_path).paths.store_dir
    (store_dir / "broken.json").write_text("{not json", encoding="utf-8")

    assert main(["list", *cfg]) == 0
    assert main(["seed", *cfg]) == 0
    assert main(["compare", *cfg]) == 0
    assert main(["preview", *cfg, "broken"]) == 1
    assert main(["render-charts", *cfg, "broken"]) == 1
    assert main(["toggle-country", *cfg, "broken", "Alpha"]) == 1
    assert main(["delete", *cfg, "bad id"]) == 1
    assert main(["toggle-country", *cfg, "bad id", "Alpha"]) == 1
    assert main(["create", *cfg, "Beta"]) == 0
    assert len(_store(config_path).list()) == 4


def test_blob_failure_is_reported(config_path: Path, tmp_path: Path) -> None:
    cfg = ["--config", str(config_path)]
    assert main(["create", *cfg, "Acme"]) == 0
    company = _store(config_path).list()[0]
    blobs_dir = load_config(config_path).paths.blobs_dir
    blobs_dir.mkdir(parents=True, exist_ok=True)
    (blobs_dir / "companies").write_text("", encoding="utf-8")

    image_path = tmp_path / "logo.png"
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), (0, 0, 255)).save(buffer, format="PNG")
    image_path.write_bytes(buffer.getvalue())
    assert main(["upload-image", *cfg, company.id, str(image_path)]) == 1
    assert _store(config_path).get(company.id).logo_url == company.logo_url
