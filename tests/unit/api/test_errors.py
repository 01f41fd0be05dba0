"""Tests for the error envelope and the ApiError hierarchy."""

from aegis.api.errors import (
    BadRequestError,
    ForbiddenError,
    InternalServerError,
    Message,
    MessageType,
    NotFoundError,
    Result,
    TooManyRequestsError,
    UnauthorizedError,
    UpstreamUnavailableError,
)


class TestMessage:
    """Test Message model."""

    def test_serializes_with_camel_case_type(self) -> None:
        """messageType is the wire name."""
        msg = Message(code="NotFound", message_type=MessageType.ERROR, text="gone")
        assert msg.model_dump(by_alias=True) == {
            "code": "NotFound",
            "messageType": "Error",
            "text": "gone",
            "timestamp": None,
        }

    def test_result_wraps_messages(self) -> None:
        result = Result(
            messages=[
                Message(code="E1", message_type=MessageType.ERROR, text="First"),
                Message(code="E2", message_type=MessageType.WARNING, text="Second"),
            ]
        )
        assert [m.code for m in result.messages] == ["E1", "E2"]


class TestApiErrors:
    """Status codes, codes and headers."""

    def test_not_found(self) -> None:
        error = NotFoundError("Incident", "inc-1")

        assert error.status_code == 404
        assert error.text == "Incident with identifier 'inc-1' not found"
        (message,) = error.to_result().messages
        assert message.code == "NotFound"
        assert message.timestamp

    def test_unauthorized_challenges_bearer(self) -> None:
        error = UnauthorizedError()
        assert error.status_code == 401
        assert error.headers == {"WWW-Authenticate": "Bearer"}

    def test_too_many_requests_sets_retry_after(self) -> None:
        error = TooManyRequestsError("slow down", retry_after=60)
        assert error.status_code == 429
        assert error.headers == {"Retry-After": "60"}

    def test_internal_error_is_exception_type(self) -> None:
        error = InternalServerError()
        assert error.status_code == 500
        assert error.to_result().messages[0].message_type == MessageType.EXCEPTION

    def test_other_codes(self) -> None:
        assert BadRequestError("x").status_code == 400
        assert ForbiddenError().status_code == 403
        assert UpstreamUnavailableError("gemini down").code == "UpstreamUnavailable"
