"""
Tests for tigli/app/services/crm.py
Forwarding of contacts to Brevo.
"""
from unittest.mock import patch

import pytest
import requests

from tigli.app.errors import ConfigurationError, ForwardingError, NetworkError
from tigli.app.models import ContactSubmission
from tigli.app.services.crm import (
    CONFIGURATION_ERROR_MESSAGE,
    GENERIC_ERROR_MESSAGE,
    build_contact_payload,
    deliver_submission,
    forward_contact,
)


@pytest.fixture()
def submission():
    return ContactSubmission(
        name="Maria De Luca",
        email="maria@example.com",
        phone="+393331234567",
    )


class TestBuildContactPayload:

    def test_maps_attributes(self, submission):
        payload = build_contact_payload(submission)
        assert payload == {
            "email": "maria@example.com",
            "attributes": {
                "FIRSTNAME": "Maria",
                "LASTNAME": "De Luca",
                "SMS": "+393331234567",
            },
            "updateEnabled": True,
        }

    def test_single_name_has_empty_last_name(self):
        payload = build_contact_payload(
            ContactSubmission(name="Maria", email="m@example.com", phone="+393331234567")
        )
        assert payload["attributes"]["LASTNAME"] == ""


class TestForwardContact:

    def test_created_contact(self, app, submission, crm_calls):
        with app.app_context():
            result = forward_contact(submission)

        assert result.status_code == 201
        assert result.duplicate is False
        assert len(crm_calls) == 1
        call = crm_calls[0]
        assert call["url"] == "https://brevo.test/v3/contacts"
        assert call["headers"]["api-key"] == "test-brevo-key"
        assert call["headers"]["content-type"] == "application/json"
        assert call["headers"]["accept"] == "application/json"
        assert call["json"]["updateEnabled"] is True

    def test_timeout_is_bounded(self, app, submission, crm_calls):
        with app.app_context():
            forward_contact(submission)
        assert crm_calls[0]["timeout"] == 5

    def test_updated_contact_without_body(self, app, submission, crm_calls, crm_response):
        crm_calls.responses = [crm_response(204)]
        with app.app_context():
            result = forward_contact(submission)
        assert result.status_code == 204

    def test_duplicate_contact_counts_as_success(self, app, submission, crm_calls, crm_response):
        crm_calls.responses = [crm_response(400, {"code": "duplicate_parameter", "message": "Contact already exist"})]
        with app.app_context():
            result = forward_contact(submission)
        assert result.duplicate is True
        assert result.status_code == 400

    def test_other_bad_request_fails(self, app, submission, crm_calls, crm_response):
        crm_calls.responses = [crm_response(400, {"code": "invalid_parameter", "message": "Invalid phone number"})]
        with app.app_context():
            with pytest.raises(ForwardingError) as exc:
                forward_contact(submission)
        assert exc.value.status_code == 400
        assert exc.value.crm_code == "invalid_parameter"
        assert "Invalid phone number" in str(exc.value)

    def test_unauthorized_fails(self, app, submission, crm_calls, crm_response):
        crm_calls.responses = [crm_response(401, {"code": "unauthorized", "message": "Key not found"})]
        with app.app_context():
            with pytest.raises(ForwardingError):
                forward_contact(submission)

    def test_unparseable_error_body(self, app, submission, crm_calls, crm_response):
        crm_calls.responses = [crm_response(502, "<html>Bad gateway</html>")]
        with app.app_context():
            with pytest.raises(ForwardingError) as exc:
                forward_contact(submission)
        assert "502" in str(exc.value)

    def test_unparseable_success_body_is_still_success(self, app, submission, crm_calls, crm_response):
        crm_calls.responses = [crm_response(201, "not json")]
        with app.app_context():
            assert forward_contact(submission).status_code == 201

    def test_missing_key_makes_no_request(self, app, submission, crm_calls):
        original = app.config["BREVO_API_KEY"]
        try:
            app.config["BREVO_API_KEY"] = None
            with app.app_context():
                with pytest.raises(ConfigurationError):
                    forward_contact(submission)
        finally:
            app.config["BREVO_API_KEY"] = original
        assert crm_calls == []

    def test_blank_key_counts_as_missing(self, app, submission, crm_calls):
        with app.app_context():
            with pytest.raises(ConfigurationError):
                forward_contact(submission, api_key="   ")
        assert crm_calls == []

    def test_network_error(self, app, submission):
        with app.app_context():
            with patch(
                "tigli.app.services.crm.requests.post",
                side_effect=requests.exceptions.ConnectionError("refused"),
            ) as post:
                with pytest.raises(NetworkError):
                    forward_contact(submission)
        assert post.call_count == 1

    def test_timeout_is_a_network_error(self, app, submission):
        with app.app_context():
            with patch(
                "tigli.app.services.crm.requests.post",
                side_effect=requests.exceptions.Timeout("slow"),
            ):
                with pytest.raises(NetworkError):
                    forward_contact(submission)


class TestRetryPolicy:

    def test_no_retry_by_default(self, app, submission, crm_calls, crm_response):
        crm_calls.responses = [crm_response(503, {"message": "unavailable"})]
        with app.app_context():
            with pytest.raises(ForwardingError):
                forward_contact(submission)
        assert len(crm_calls) == 1

    def test_server_error_is_retried(self, app, submission, crm_calls, crm_response):
        crm_calls.responses = [crm_response(503), crm_response(201)]
        with app.app_context():
            result = forward_contact(submission, max_retries=2)
        assert result.status_code == 201
        assert len(crm_calls) == 2

    def test_client_error_is_never_retried(self, app, submission, crm_calls, crm_response):
        crm_calls.responses = [crm_response(400, {"code": "invalid_parameter"})]
        with app.app_context():
            with pytest.raises(ForwardingError):
                forward_contact(submission, max_retries=3)
        assert len(crm_calls) == 1

    def test_network_error_is_retried(self, app, submission, crm_calls, crm_response):
        crm_calls.responses = [requests.exceptions.ConnectionError("reset"), crm_response(201)]
        with app.app_context():
            result = forward_contact(submission, max_retries=1)
        assert result.status_code == 201
        assert len(crm_calls) == 2

    def test_retries_are_exhausted(self, app, submission, crm_calls, crm_response):
        crm_calls.responses = [crm_response(500)]
        with app.app_context():
            with pytest.raises(ForwardingError):
                forward_contact(submission, max_retries=2)
        assert len(crm_calls) == 3


class TestDeliverSubmission:

    def test_success_returns_none(self, app, submission, crm_calls):
        with app.app_context():
            assert deliver_submission(submission) is None

    def test_missing_key_message(self, app, submission, crm_calls):
        with app.app_context():
            with patch.dict(app.config, {"BREVO_API_KEY": None}):
                assert deliver_submission(submission) == CONFIGURATION_ERROR_MESSAGE
        assert crm_calls == []

    def test_rejection_is_generic(self, app, submission, crm_calls, crm_response):
        crm_calls.responses = [crm_response(400, {"code": "invalid_parameter", "message": "secret detail"})]
        with app.app_context():
            message = deliver_submission(submission)
        assert message == GENERIC_ERROR_MESSAGE
        assert "secret detail" not in message
