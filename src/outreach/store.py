"""JSON document store for company profiles, one file per company."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path

from .defaults import create_empty_company
from .models import Company
from .util import read_json, write_json

_SAFE_ID = re.compile(r"^[A-Za-z0-9_-]+$")

_LOGGER = logging.getLogger("outreach.store")


class PersistenceFailure(RuntimeError):
    """A company document could not be read or written."""


class JsonCompanyStore:
    def __init__(self, root: Path) -> None:
        self.root = root

    def path_for(self, company_id: str) -> Path:
        if not _SAFE_ID.match(company_id):
            raise PersistenceFailure(f"Invalid company id '{company_id}'")
        return self.root / f"{company_id}.json"

    def list(self) -> list[Company]:
        """All readable companies, ordered by name; unreadable documents are skipped with a warning."""
        if not self.root.exists():
            return []
        companies: list[Company] = []
        for path in sorted(self.root.glob("*.json")):
            try:
                companies.append(self._read(path))
            except PersistenceFailure as exc:
                _LOGGER.warning("Skipping company document: %s", exc)
        return sorted(companies, key=lambda company: (company.name.casefold(), company.id))

    def get(self, company_id: str) -> Company | None:
        path = self.path_for(company_id)
        if not path.exists():
            return None
        return self._read(path)

    def put(self, company: Company) -> Company:
        path = self.path_for(company.id)
        try:
            write_json(path, company.to_dict())
        except OSError as exc:
            raise PersistenceFailure(f"Failed writing company '{company.id}': {exc}") from exc
        _LOGGER.debug("Saved company %s (%s)", company.id, company.name)
        return company

    def create(self, name: str) -> Company:
        company = create_empty_company(name)
        self.put(company)
        _LOGGER.info("Created company %s (%s)", company.id, company.name)
        return company

    def delete(self, company_id: str) -> bool:
        path = self.path_for(company_id)
        if not path.exists():
            return False
        try:
            path.unlink()
        except OSError as exc:
            raise PersistenceFailure(f"Failed deleting company '{company_id}': {exc}") from exc
        _LOGGER.info("Deleted company %s", company_id)
        return True

    def _read(self, path: Path) -> Company:
        try:
            raw = read_json(path)
        except (OSError, json.JSONDecodeError) as exc:
            raise PersistenceFailure(f"Failed reading {path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise PersistenceFailure(f"Company document {path} must be a JSON object")
        try:
            return Company.from_mapping(raw)
        except ValueError as exc:
            raise PersistenceFailure(f"Invalid company document {path}: {exc}") from exc
