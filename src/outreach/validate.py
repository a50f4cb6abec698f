"""Validation layer for config, stored company documents and boundary joins."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from .boundaries import BoundaryRepository, DataUnavailable
from .charts import year_sort_key
from .config import AppConfig
from .models import Company
from .store import JsonCompanyStore, PersistenceFailure
from .util import format_report_lines


@dataclass(slots=True)
class ValidationReport:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    infos: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)

    def add_info(self, msg: str) -> None:
        self.infos.append(msg)


class Validator:
    """Top-level document and dataset validator."""

    def __init__(self, cfg: AppConfig, *, repository: BoundaryRepository | None = None) -> None:
        self.cfg = cfg
        self._repository = repository

    def run(self, *, check_boundaries: bool = True, strict_boundaries: bool = False) -> ValidationReport:
        report = ValidationReport()
        self._validate_seed(report)
        companies = self._validate_documents(report)
        for company in companies:
            self._validate_company(report, company)
        if check_boundaries:
            self._validate_highlight_names(
                report, companies=companies, strict_boundaries=strict_boundaries
            )
        return report

    def _validate_seed(self, report: ValidationReport) -> None:
        names = [name.casefold() for name in self.cfg.seed.companies]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            report.add_warning(f"Duplicate seed company names: {', '.join(duplicates)}")

    def _validate_documents(self, report: ValidationReport) -> list[Company]:
        store_dir = self.cfg.paths.store_dir
        if not store_dir.exists():
            report.add_warning(f"Store directory does not exist yet: {store_dir}")
            return []
        store = JsonCompanyStore(store_dir)
        companies: list[Company] = []
        for path in sorted(store_dir.glob("*.json")):
            try:
                company = store.get(path.stem)
            except PersistenceFailure as exc:
                report.add_error(str(exc))
                continue
            if company is None:
                continue
            if company.id != path.stem:
                report.add_error(f"Document {path.name} holds company id '{company.id}'")
            companies.append(company)
        report.add_info(f"Loaded {len(companies)} company documents from {store_dir}")
        return companies

    def _validate_company(self, report: ValidationReport, company: Company) -> None:
        label = f"{company.name} ({company.id})"
        present_keys = {key for record in company.production_data for key in record.values}
        for chart in company.charts:
            if chart.data_key not in present_keys:
                report.add_warning(
                    f"{label}: chart '{chart.title}' uses key '{chart.data_key}' "
                    "that no year record has; it will chart as 0"
                )
        titles = [chart.title for chart in company.charts]
        duplicate_titles = sorted({title for title in titles if titles.count(title) > 1})
        if duplicate_titles:
            report.add_warning(f"{label}: duplicate chart titles {', '.join(duplicate_titles)}")

        years = [record.year for record in company.production_data]
        duplicate_years = sorted({year for year in years if years.count(year) > 1})
        if duplicate_years:
            report.add_warning(f"{label}: duplicate years {', '.join(duplicate_years)}")
        non_numeric = [year for year in years if year_sort_key(year)[0] != 0]
        if non_numeric:
            report.add_warning(f"{label}: non-numeric years {', '.join(non_numeric)}")

    def _validate_highlight_names(
        self,
        report: ValidationReport,
        *,
        companies: Iterable[Company],
        strict_boundaries: bool,
    ) -> None:
        repository = self._repository or BoundaryRepository(self.cfg.boundaries)
        try:
            dataset = repository.load()
        except DataUnavailable as exc:
            msg = f"Boundary data unavailable; highlight names not checked: {exc}"
            if strict_boundaries:
                report.add_error(msg)
            else:
                report.add_warning(msg)
            return
        report.add_info(f"Loaded {len(dataset)} country boundaries from {dataset.source}")

        known = dataset.names
        for company in companies:
            unknown = [name for name in company.highlighted_countries if name not in known]
            if unknown:
                report.add_warning(
                    f"{company.name} ({company.id}): highlighted names not in boundary data: "
                    f"{', '.join(unknown)}"
                )


def format_validation_lines(report: ValidationReport) -> list[str]:
    return format_report_lines(
        infos=report.infos,
        warnings=report.warnings,
        errors=report.errors,
        ok_message="Validation completed with no errors." if report.ok else None,
    )
