"""CLI entrypoint for outreach company profiles."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Sequence

from .blobs import BlobStoreError, LocalBlobStore, upload_image
from .compare import available_metrics, default_metric, write_comparison
from .config import AppConfig, load_config
from .editor import ProfileEditor
from .models import LOCATION_TYPES
from .preview import format_output_lines, run_preview, run_render_charts, run_render_map
from .store import JsonCompanyStore, PersistenceFailure
from .util import ensure_directories, setup_logging
from .validate import Validator, format_validation_lines

LOGGER = logging.getLogger("outreach.cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="outreach",
        description="Outreach company profile editor and renderer.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common(p: argparse.ArgumentParser) -> None:
        p.add_argument("--config", default="config.yaml", help="Path to YAML config.")
        p.add_argument("--verbose", action="store_true", help="Enable debug logs.")

    validate_p = subparsers.add_parser("validate", help="Validate config and stored profiles.")
    add_common(validate_p)
    validate_p.add_argument(
        "--skip-boundaries",
        action="store_true",
        help="Do not load boundary data to check highlighted country names.",
    )
    validate_p.add_argument(
        "--strict-boundaries",
        action="store_true",
        help="Treat unavailable boundary data as a validation error.",
    )

    list_p = subparsers.add_parser("list", help="List stored companies.")
    add_common(list_p)

    create_p = subparsers.add_parser("create", help="Create a company with default content.")
    add_common(create_p)
    create_p.add_argument("name", help="Company name.")

    delete_p = subparsers.add_parser("delete", help="Delete a company.")
    add_common(delete_p)
    delete_p.add_argument("company_id")

    seed_p = subparsers.add_parser("seed", help="Create the configured seed companies that are missing.")
    add_common(seed_p)

    toggle_p = subparsers.add_parser("toggle-country", help="Toggle a highlighted country.")
    add_common(toggle_p)
    toggle_p.add_argument("company_id")
    toggle_p.add_argument("country", help="Country display name as in the boundary data.")

    move_p = subparsers.add_parser("move-pin", help="Move a location pin.")
    add_common(move_p)
    move_p.add_argument("company_id")
    move_p.add_argument("pin_id")
    move_p.add_argument("lat")
    move_p.add_argument("lng")

    pin_p = subparsers.add_parser("add-pin", help="Add a location pin.")
    add_common(pin_p)
    pin_p.add_argument("company_id")
    pin_p.add_argument("name")
    pin_p.add_argument("lat")
    pin_p.add_argument("lng")
    pin_p.add_argument("--type", choices=LOCATION_TYPES, default="office")

    metric_p = subparsers.add_parser("set-metric", help="Set one metric value for a year.")
    add_common(metric_p)
    metric_p.add_argument("company_id")
    metric_p.add_argument("year")
    metric_p.add_argument("key")
    metric_p.add_argument("value")

    chart_p = subparsers.add_parser("add-chart", help="Add a chart for a metric key.")
    add_common(chart_p)
    chart_p.add_argument("company_id")
    chart_p.add_argument("key", help="Metric key in the year records.")
    chart_p.add_argument("title")
    chart_p.add_argument("label", help="Y-axis label.")

    upload_p = subparsers.add_parser("upload-image", help="Compress and store a logo or portrait.")
    add_common(upload_p)
    upload_p.add_argument("company_id")
    upload_p.add_argument("file", type=Path)
    upload_p.add_argument(
        "--executive",
        default=None,
        help="Executive id; without it the image becomes the company logo.",
    )

    map_p = subparsers.add_parser("render-map", help="Render the company map image.")
    add_common(map_p)
    map_p.add_argument("company_id")
    map_p.add_argument("--edit-mode", action="store_true", help="Render with the edit hint.")

    charts_p = subparsers.add_parser("render-charts", help="Render the company chart images.")
    add_common(charts_p)
    charts_p.add_argument("company_id")

    preview_p = subparsers.add_parser("preview", help="Write the printable preview page.")
    add_common(preview_p)
    preview_p.add_argument("company_id")

    compare_p = subparsers.add_parser("compare", help="Write metric comparison CSVs.")
    add_common(compare_p)
    compare_p.add_argument("--metric", default=None, help="Chart title to compare.")
    compare_p.add_argument(
        "--company",
        action="append",
        default=[],
        help="Company id filter. Can be repeated.",
    )

    return parser


def _load_and_setup(args: argparse.Namespace) -> AppConfig:
    cfg = load_config(args.config)
    log_path = cfg.paths.logs_dir / "outreach.log"
    setup_logging(log_path, verbose=args.verbose)
    ensure_directories(cfg.paths.build_directories)
    return cfg


def _run_validate(cfg: AppConfig, *, check_boundaries: bool, strict_boundaries: bool) -> int:
    report = Validator(cfg).run(
        check_boundaries=check_boundaries, strict_boundaries=strict_boundaries
    )
    for line in format_validation_lines(report):
        LOGGER.info(line)
    return 0 if report.ok else 1


def _run_list(store: JsonCompanyStore) -> int:
    companies = store.list()
    for company in companies:
        LOGGER.info("%s  %s", company.id, company.name)
    LOGGER.info("%d companies.", len(companies))
    return 0


def _run_seed(cfg: AppConfig, store: JsonCompanyStore) -> int:
    existing = {company.name.casefold() for company in store.list()}
    created = 0
    for name in cfg.seed.companies:
        if name.casefold() in existing:
            continue
        try:
            store.create(name)
        except PersistenceFailure as exc:
            LOGGER.error("Seeding %s failed: %s", name, exc)
            return 1
        existing.add(name.casefold())
        created += 1
    LOGGER.info("Seeded %d new companies (%d configured).", created, len(cfg.seed.companies))
    return 0


def _open_editor(store: JsonCompanyStore, company_id: str) -> ProfileEditor | None:
    try:
        return ProfileEditor.open(store, company_id)
    except KeyError:
        LOGGER.error("Unknown company id: %s", company_id)
        return None
    except PersistenceFailure as exc:
        LOGGER.error("Cannot open company %s: %s", company_id, exc)
        return None


def _run_edit(store: JsonCompanyStore, args: argparse.Namespace) -> int:
    editor = _open_editor(store, str(args.company_id))
    if editor is None:
        return 1
    command = str(args.command)
    try:
        if command == "toggle-country":
            company = editor.toggle_country(str(args.country))
            state = "on" if args.country in company.highlighted_countries else "off"
            LOGGER.info("Highlight for %s is now %s.", args.country, state)
        elif command == "move-pin":
            company = editor.move_pin(str(args.pin_id), args.lat, args.lng)
            moved = company.location(str(args.pin_id))
            LOGGER.info("Pin %s moved to (%s, %s).", args.pin_id, moved.lat, moved.lng)
        elif command == "add-pin":
            company = editor.add_pin(name=str(args.name), lat=args.lat, lng=args.lng, type=args.type)
            LOGGER.info("Added pin %s.", company.locations[-1].id)
        elif command == "set-metric":
            editor.set_metric(str(args.year), str(args.key), args.value)
            LOGGER.info("Set %s for %s.", args.key, args.year)
        elif command == "add-chart":
            company = editor.add_chart(
                data_key=str(args.key), title=str(args.title), axis_label=str(args.label)
            )
            LOGGER.info("Added chart %s.", company.charts[-1].id)
        else:
            raise ValueError(f"Unknown edit command: {command}")
    except (ValueError, PersistenceFailure) as exc:
        LOGGER.error("%s failed: %s", command, exc)
        return 1
    return 0


def _run_upload_image(
    cfg: AppConfig,
    store: JsonCompanyStore,
    *,
    company_id: str,
    file: Path,
    executive_id: str | None,
) -> int:
    editor = _open_editor(store, company_id)
    if editor is None:
        return 1
    if executive_id and all(item.id != executive_id for item in editor.company.executives):
        LOGGER.error("Unknown executive id: %s", executive_id)
        return 1
    if not file.exists():
        LOGGER.error("Image file not found: %s", file)
        return 1

    blobs = LocalBlobStore(cfg.paths.blobs_dir, base_url=cfg.images.base_url)
    try:
        result = upload_image(
            blobs,
            file.read_bytes(),
            company_id=company_id,
            filename=file.name,
            cfg=cfg.images,
            executive_id=executive_id,
        )
    except BlobStoreError as exc:
        LOGGER.error("Image upload failed: %s", exc)
        return 1
    try:
        if executive_id:
            editor.set_executive_image(executive_id, result.url)
        else:
            editor.set_logo(result.url)
    except PersistenceFailure as exc:
        LOGGER.error("Stored image but failed saving company: %s", exc)
        return 1
    LOGGER.info("Image stored at %s", result.url)
    return 0


def _run_compare(
    cfg: AppConfig,
    store: JsonCompanyStore,
    *,
    metric: str | None,
    company_ids: Sequence[str],
) -> int:
    companies = store.list()
    if company_ids:
        wanted = set(company_ids)
        companies = [company for company in companies if company.id in wanted]
    metrics = available_metrics(companies)
    chosen = metric or default_metric(metrics)
    if chosen is None:
        LOGGER.error("No chart metrics available to compare.")
        return 1
    if chosen not in metrics:
        LOGGER.error("Unknown metric '%s'. Available: %s", chosen, ", ".join(metrics))
        return 1
    trend_path, snapshot_path = write_comparison(companies, chosen, cfg.paths.output_dir)
    LOGGER.info("Trend table: %s", trend_path)
    LOGGER.info("Latest snapshot: %s", snapshot_path)
    return 0


def _dispatch(args: argparse.Namespace) -> int:
    cfg = _load_and_setup(args)
    store = JsonCompanyStore(cfg.paths.store_dir)
    command = str(args.command)
    if command == "validate":
        return _run_validate(
            cfg,
            check_boundaries=not bool(args.skip_boundaries),
            strict_boundaries=bool(args.strict_boundaries),
        )
    if command == "list":
        return _run_list(store)
    if command == "create":
        try:
            company = store.create(str(args.name))
        except PersistenceFailure as exc:
            LOGGER.error("create failed: %s", exc)
            return 1
        LOGGER.info("Created %s (%s).", company.id, company.name)
        return 0
    if command == "delete":
        try:
            deleted = store.delete(str(args.company_id))
        except PersistenceFailure as exc:
            LOGGER.error("delete failed: %s", exc)
            return 1
        if not deleted:
            LOGGER.error("Unknown company id: %s", args.company_id)
            return 1
        return 0
    if command == "seed":
        return _run_seed(cfg, store)
    if command in {"toggle-country", "move-pin", "add-pin", "set-metric", "add-chart"}:
        return _run_edit(store, args)
    if command == "upload-image":
        return _run_upload_image(
            cfg,
            store,
            company_id=str(args.company_id),
            file=args.file,
            executive_id=args.executive,
        )
    if command in {"render-map", "render-charts", "preview"}:
        company_id = str(args.company_id)
        if command == "render-map":
            report = run_render_map(cfg, company_id, edit_mode=bool(args.edit_mode))
        elif command == "render-charts":
            report = run_render_charts(cfg, company_id)
        else:
            report = run_preview(cfg, company_id)
        for line in format_output_lines(report):
            LOGGER.info(line)
        return 0 if report.ok else 1
    if command == "compare":
        return _run_compare(
            cfg,
            store,
            metric=args.metric,
            company_ids=[str(item) for item in args.company],
        )
    raise ValueError(f"Unknown command: {command}")


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    return _dispatch(args)


if __name__ == "__main__":
    raise SystemExit(main())
