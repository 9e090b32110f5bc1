import asyncio
from datetime import date

import httpx

from services.lookups import (
    DailyMedLookup,
    InternalDatasetLookup,
    OpenFDALookup,
    format_compact_date,
    gather_evidence,
    normalize_code,
    render_evidence,
)
from fakes import ExplodingLookup, StaticLookup


def fixed_today():
    return date(2026, 10, 17)


def run(coro):
    return asyncio.run(coro)


# --- internal dataset ---

def test_normalize_code_strips_separators():
    assert normalize_code("0003-4215-91") == "0003421591"
    assert normalize_code(" 0003 4215 91 ") == "0003421591"
    assert normalize_code(None) == ""


def test_compact_dates_are_rendered_iso():
    assert format_compact_date("20170430") == "2017-04-30"
    assert format_compact_date("2017-04") == "2017-04"
    assert format_compact_date(None) == "N/A"


def test_discontinued_product_is_flagged():
    lookup = InternalDatasetLookup(today=fixed_today)

    result = run(lookup.lookup("0003-4215-91"))

    assert result.found
    assert result.discontinued
    assert result.brand_name == "Glucovance"
    assert "DISCONTINUED" in result.raw_details
    assert "2017-04-30" in result.raw_details
    assert "high-risk" in result.raw_details


def test_match_ignores_hyphens_and_accepts_ndc11():
    lookup = InternalDatasetLookup(today=fixed_today)

    assert lookup.match("000342159 1")["ProprietaryName"] == "Glucovance"
    assert lookup.match("00093854752")["ProprietaryName"] == "Amoxicillin"


def test_record_code_contained_in_query_matches():
    lookup = InternalDatasetLookup(today=fixed_today)

    # package segment appended to a product-level code
    assert lookup.match("50090-2875-0")["ProprietaryName"] == "Lisinopril"


def test_exact_match_beats_partial_match():
    records = [
        {"ItemCode": "1234-5678", "ProprietaryName": "Short"},
        {"ItemCode": "1234-5678-90", "ProprietaryName": "Exact"},
    ]
    lookup = InternalDatasetLookup(records=records, today=fixed_today)

    assert lookup.match("1234567890")["ProprietaryName"] == "Exact"


def test_future_end_date_is_not_discontinued():
    lookup = InternalDatasetLookup(today=fixed_today)

    result = run(lookup.lookup("0172-5312-60"))

    assert result.found
    assert not result.discontinued
    assert "Marketing end date: 2099-12-31" in result.raw_details


def test_unknown_code_is_not_found():
    lookup = InternalDatasetLookup(today=fixed_today)

    result = run(lookup.lookup("9999-9999-99"))

    assert not result.found
    assert "9999-9999-99" in result.raw_details


def test_internal_lookup_is_idempotent():
    lookup = InternalDatasetLookup(today=fixed_today)

    assert run(lookup.lookup("0093-8547-52")) == run(lookup.lookup("0093-8547-52"))


# --- OpenFDA ---

NDC_RECORD = {
    "product_ndc": "0093-8547",
    "brand_name": "Amoxicillin",
    "generic_name": "AMOXICILLIN",
    "labeler_name": "Teva Pharmaceuticals USA, Inc.",
    "openfda": {"manufacturer_name": ["Teva Pharmaceuticals USA, Inc."]},
}


def test_openfda_found_on_ndc_endpoint():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json={"results": [NDC_RECORD]})

    lookup = OpenFDALookup(api_key="secret", transport=httpx.MockTransport(handler))
    result = run(lookup.lookup("0093-8547"))

    assert result.found
    assert result.brand_name == "Amoxicillin"
    assert result.manufacturer == "Teva Pharmaceuticals USA, Inc."
    assert result.payload == NDC_RECORD
    assert len(requests) == 1
    params = requests[0].url.params
    assert requests[0].url.path == "/drug/ndc.json"
    assert params["search"] == 'product_ndc:"0093-8547"'
    assert params["limit"] == "1"
    assert params["api_key"] == "secret"


def test_openfda_falls_back_to_label_endpoint():
    label = {"openfda": {"brand_name": ["Claritin"], "manufacturer_name": ["Bayer"], "product_ndc": ["11523-7160"]}}

    def handler(request):
        if request.url.path == "/drug/ndc.json":
            return httpx.Response(404, json={"error": {"code": "NOT_FOUND"}})
        assert request.url.params["search"] == 'openfda.product_ndc:"11523-7160"'
        return httpx.Response(200, json={"results": [label]})

    result = run(OpenFDALookup(transport=httpx.MockTransport(handler)).lookup("11523-7160"))

    assert result.found
    assert result.brand_name == "Claritin"
    assert result.manufacturer == "Bayer"


def test_openfda_no_results_anywhere():
    transport = httpx.MockTransport(lambda request: httpx.Response(404, json={"error": {"code": "NOT_FOUND"}}))

    result = run(OpenFDALookup(transport=transport).lookup("0000-0000"))

    assert not result.found
    assert "counterfeit" in result.raw_details


def test_openfda_server_error_degrades():
    transport = httpx.MockTransport(lambda request: httpx.Response(503))

    result = run(OpenFDALookup(transport=transport).lookup("0093-8547"))

    assert not result.found
    assert "not available" in result.raw_details
    assert "503" in result.raw_details


def test_openfda_network_error_degrades():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    result = run(OpenFDALookup(transport=httpx.MockTransport(handler)).lookup("0093-8547"))

    assert not result.found
    assert "not available" in result.raw_details


def test_openfda_malformed_payload_degrades():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"<html>oops</html>"))

    result = run(OpenFDALookup(transport=transport).lookup("0093-8547"))

    assert not result.found
    assert "malformed" in result.raw_details


# --- DailyMed ---

def test_dailymed_found():
    def handler(request):
        assert request.url.path.endswith("/spls.json")
        assert request.url.params["ndc"] == "0093-8547-52"
        return httpx.Response(200, json={"data": [{
            "spl_product_data_elements": [{"brand_name": "Amoxicillin"}],
            "author": "Teva Pharmaceuticals USA, Inc.",
        }]})

    result = run(DailyMedLookup(transport=httpx.MockTransport(handler)).lookup("0093-8547-52"))

    assert result.found
    assert result.brand_name == "Amoxicillin"
    assert result.manufacturer == "Teva Pharmaceuticals USA, Inc."


def test_dailymed_empty_data_is_not_found():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"data": []}))

    result = run(DailyMedLookup(transport=transport).lookup("0093-8547-52"))

    assert not result.found


def test_dailymed_lookup_is_idempotent():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"data": [{"title": "AMOXIL", "author": "GSK"}]}))
    lookup = DailyMedLookup(transport=transport)

    assert run(lookup.lookup("0029-6008")) == run(lookup.lookup("0029-6008"))


# --- gathering ---

def test_gather_evidence_keeps_order_and_survives_broken_adapter():
    first = StaticLookup("Internal Dataset", found=True)
    last = StaticLookup("DailyMed", found=False)

    results = run(gather_evidence([first, ExplodingLookup(), last], "0093-8547"))

    assert [r.source_name for r in results] == ["Internal Dataset", "Broken", "DailyMed"]
    assert not results[1].found
    assert "not available" in results[1].raw_details
    assert first.codes == ["0093-8547"]


def test_render_evidence():
    assert "No database lookups" in render_evidence([])
    text = run(gather_evidence([StaticLookup("OpenFDA", details="Found it")], "1"))
    assert render_evidence(text) == "### OpenFDA\nFound it"
