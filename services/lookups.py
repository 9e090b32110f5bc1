"""
Evidence lookups.

Each adapter answers one question, "what does this source know about this code?",
and always answers it: network failures, error statuses and malformed payloads
come back as a LookupResult with found=False and an explanation, never as an
exception. The orchestrator feeds the rendered results to the model as evidence.
"""
import json
import logging
import re
from datetime import date, datetime
from pathlib import Path
from typing import Callable, Optional

import httpx

from services.errors import LookupUnavailable
from services.schemas import LookupResult

logger = logging.getLogger(__name__)

DATASET_PATH = Path(__file__).parent / "data" / "ndc_dataset.json"
_SEPARATORS = re.compile(r"[\s\-]")


def normalize_code(code: Optional[str]) -> str:
    return _SEPARATORS.sub("", code or "")


def parse_compact_date(value: Optional[str]) -> Optional[date]:
    """Parse the dataset's 8-digit YYYYMMDD dates. Anything else gives None."""
    if not value:
        return None
    try:
        return datetime.strptime(value.strip(), "%Y%m%d").date()
    except ValueError:
        return None


def format_compact_date(value: Optional[str]) -> str:
    parsed = parse_compact_date(value)
    if parsed:
        return parsed.isoformat()
    return value or "N/A"


def _first(value) -> Optional[str]:
    # OpenFDA returns some fields as strings and others as single-item lists
    if isinstance(value, list):
        value = value[0] if value else None
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def load_dataset(path: Optional[Path] = None) -> list[dict]:
    with open(path or DATASET_PATH, encoding="utf-8") as f:
        return json.load(f)


class InternalDatasetLookup:
    source_name = "Internal Dataset"

    def __init__(self, records: Optional[list[dict]] = None, path: Optional[Path] = None,
                 today: Callable[[], date] = date.today):
        self.records = records if records is not None else load_dataset(path)
        self.today = today

    def match(self, code: str) -> Optional[dict]:
        needle = normalize_code(code)
        if not needle:
            return None

        # Exact matches win over partial ones; NDCs are printed with and without
        # the package segment, so a record code contained in the query also counts
        for exact in (True, False):
            for record in self.records:
                for key in ("ItemCode", "NDC11"):
                    candidate = normalize_code(record.get(key))
                    if not candidate:
                        continue
                    if candidate == needle or (not exact and candidate in needle):
                        return record
        return None

    async def lookup(self, code: str) -> LookupResult:
        record = self.match(code)
        if record is None:
            return LookupResult(
                source_name=self.source_name,
                found=False,
                raw_details=f'No match found for code "{code}" in the internal dataset.',
            )

        name = record.get("ProprietaryName") or "Unknown"
        lines = [
            f"Match found in internal dataset: {name} (NDC {record.get('ItemCode', 'N/A')})",
            f"Dosage form: {record.get('DosageForm') or 'N/A'}",
            f"Marketing category: {record.get('MarketingCategory') or 'N/A'}",
            f"Application number: {record.get('ApplicationNumber') or 'N/A'}",
            f"Product type: {record.get('ProductType') or 'N/A'}",
            f"Marketing start date: {format_compact_date(record.get('MarketingStartDate'))}",
        ]

        discontinued = False
        end_raw = record.get("MarketingEndDate")
        if end_raw:
            end = parse_compact_date(end_raw)
            if end and end < self.today():
                discontinued = True
                lines.append(
                    f"DISCONTINUED: marketing ended on {end.isoformat()}; the product should be "
                    "out of circulation. Treat as a high-risk factor."
                )
            else:
                lines.append(f"Marketing end date: {format_compact_date(end_raw)}")

        return LookupResult(
            source_name=self.source_name,
            found=True,
            brand_name=name,
            raw_details="\n".join(lines),
            discontinued=discontinued,
            payload=record,
        )


class _HttpLookup:
    """Shared GET/JSON handling for the public drug APIs."""

    source_name = "HTTP"

    def __init__(self, base_url: str, timeout: float = 10.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url
        self.timeout = timeout
        self.transport = transport

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport)

    async def get_json(self, client: httpx.AsyncClient, path: str, params: dict) -> Optional[dict]:
        """GET a JSON object. None means the source answered "no match"."""
        try:
            response = await client.get(path, params=params)
        except httpx.HTTPError as e:
            raise LookupUnavailable(self.source_name, str(e) or type(e).__name__) from e

        if response.status_code == 404:
            return None
        if response.is_error:
            raise LookupUnavailable(self.source_name, f"status {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise LookupUnavailable(self.source_name, "malformed JSON response") from e
        if not isinstance(data, dict):
            raise LookupUnavailable(self.source_name, "unexpected response shape")
        return data

    def unavailable(self, exc: LookupUnavailable) -> LookupResult:
        logger.warning("Lookup failed: %s", exc)
        return LookupResult(
            source_name=self.source_name,
            found=False,
            raw_details=f"{self.source_name} is not available: {exc.reason}.",
        )

    def not_found(self, code: str) -> LookupResult:
        return LookupResult(
            source_name=self.source_name,
            found=False,
            raw_details=f'No drug found for code "{code}" in the {self.source_name} database.',
        )


class OpenFDALookup(_HttpLookup):
    source_name = "OpenFDA"

    def __init__(self, base_url: str = "https://api.fda.gov", api_key: str = "", timeout: float = 10.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(base_url, timeout, transport)
        self.api_key = api_key

    async def _search(self, client: httpx.AsyncClient, path: str, search: str) -> Optional[dict]:
        params = {"search": search, "limit": 1}
        if self.api_key:
            params["api_key"] = self.api_key

        data = await self.get_json(client, path, params)
        if data is None:
            return None
        results = data.get("results")
        if not results:
            return None
        if not isinstance(results, list) or not isinstance(results[0], dict):
            raise LookupUnavailable(self.source_name, "unexpected results payload")
        return results[0]

    async def lookup(self, code: str) -> LookupResult:
        code = (code or "").strip()
        if not code:
            return self.not_found(code)

        try:
            async with self.client() as client:
                record = await self._search(client, "/drug/ndc.json", f'product_ndc:"{code}"')
                if record is None:
                    record = await self._search(client, "/drug/label.json", f'openfda.product_ndc:"{code}"')
        except LookupUnavailable as e:
            return self.unavailable(e)

        if record is None:
            result = self.not_found(code)
            return result.model_copy(update={
                "raw_details": result.raw_details
                + " This could be a non-US drug, a non-prescription item, or a counterfeit product."
            })

        openfda = record.get("openfda") or {}
        brand_name = _first(record.get("brand_name")) or _first(openfda.get("brand_name"))
        generic_name = _first(record.get("generic_name")) or _first(openfda.get("generic_name"))
        manufacturer = (
            _first(record.get("labeler_name"))
            or _first(record.get("manufacturer_name"))
            or _first(openfda.get("manufacturer_name"))
        )
        product_ndc = _first(record.get("product_ndc")) or _first(openfda.get("product_ndc")) or code

        return LookupResult(
            source_name=self.source_name,
            found=True,
            brand_name=brand_name,
            generic_name=generic_name,
            manufacturer=manufacturer,
            raw_details=(
                "Found in the OpenFDA database. "
                f"Brand name: {brand_name or 'N/A'}, Generic name: {generic_name or 'N/A'}, "
                f"Manufacturer: {manufacturer or 'N/A'}, Product NDC: {product_ndc}."
            ),
            payload=record,
        )


class DailyMedLookup(_HttpLookup):
    source_name = "DailyMed"

    def __init__(self, base_url: str = "https://dailymed.nlm.nih.gov/dailymed/services/v2",
                 timeout: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(base_url, timeout, transport)

    async def lookup(self, code: str) -> LookupResult:
        code = (code or "").strip()
        if not code:
            return self.not_found(code)

        try:
            async with self.client() as client:
                data = await self.get_json(client, "/spls.json", {"ndc": code, "limit": 1})
            entries = (data or {}).get("data") or []
            if not isinstance(entries, list) or (entries and not isinstance(entries[0], dict)):
                raise LookupUnavailable(self.source_name, "unexpected data payload")
        except LookupUnavailable as e:
            return self.unavailable(e)

        if not entries:
            return self.not_found(code)

        entry = entries[0]
        brand_name = None
        elements = entry.get("spl_product_data_elements")
        if isinstance(elements, list) and elements and isinstance(elements[0], dict):
            brand_name = _first(elements[0].get("brand_name"))
        brand_name = brand_name or _first(entry.get("title"))
        author = _first(entry.get("author"))

        return LookupResult(
            source_name=self.source_name,
            found=True,
            brand_name=brand_name,
            manufacturer=author,
            raw_details=f"Found in DailyMed. Product: {brand_name or 'N/A'}, Labeler: {author or 'N/A'}.",
            payload=entry,
        )


async def gather_evidence(lookups, code: str) -> list[LookupResult]:
    """Run every adapter in order. A misbehaving adapter degrades to a not-available result."""
    results = []
    for adapter in lookups:
        source = getattr(adapter, "source_name", type(adapter).__name__)
        try:
            result = await adapter.lookup(code)
        except Exception as e:
            logger.exception("Lookup adapter %s raised", source)
            result = LookupResult(source_name=source, found=False,
                                  raw_details=f"{source} is not available: {e}.")
        results.append(result)
    return results


def render_evidence(results: list[LookupResult]) -> str:
    if not results:
        return "No database lookups were performed (no NDC, GTIN or barcode was provided)."
    return "\n\n".join(f"### {r.source_name}\n{r.raw_details}" for r in results)
