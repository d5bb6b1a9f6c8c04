from adframe.errors import GENERIC_FAILURE_MESSAGE, NoReliableSlot, PageLoadTimeout, RequestValidationError, error_payload


def test_error_payload_for_classified_errors(monkeypatch):
    monkeypatch.delenv("ADFRAME_ENV", raising=False)
    payload = error_payload(PageLoadTimeout("https://example.de", "Timeout 30000ms exceeded"))
    assert payload["code"] == "PAGE_LOAD_TIMEOUT"
    assert payload["status"] == 504
    assert payload["error"].startswith("Page load timed out")
    assert "Timeout 30000ms exceeded" in payload["details"]


def test_validation_errors_need_no_details():
    payload = error_payload(RequestValidationError("Ad size is required"))
    assert payload == {"error": "Ad size is required", "code": "INVALID_REQUEST", "status": 400}


def test_no_reliable_slot_names_the_size():
    exc = NoReliableSlot("728x90")
    assert "728x90" in error_payload(exc)["error"]
    assert exc.status == 422


def test_unexpected_errors_are_masked_in_production(monkeypatch):
    monkeypatch.setenv("ADFRAME_ENV", "production")
    payload = error_payload(RuntimeError("browser crashed at 0xdeadbeef"))
    assert payload == {"error": GENERIC_FAILURE_MESSAGE, "code": "MOCKUP_FAILED", "status": 500}
