"""Unit tests for backend_client.errors module."""

import pytest

from src.backend_client.errors import (
    APIError,
    BackendNotFoundError,
    CmsError,
    CursorActionError,
    EditorialWorkflowError,
    InvalidCredentialsError,
    TransportError,
    UnsupportedCapabilityError,
)


class TestErrorHierarchy:
    """All library errors share the CmsError base."""

    @pytest.mark.parametrize("error", [
        TransportError("https://x", "timeout"),
        APIError("Not Found", 404, "GitLab"),
        EditorialWorkflowError("content is not under editorial workflow", True),
        CursorActionError("next", []),
        UnsupportedCapabilityError("gitlab", "unpublished_entries"),
        BackendNotFoundError("bitbucket"),
        InvalidCredentialsError("GitLab", "401 Unauthorized"),
    ])
    def test_is_cms_error(self, error):
        assert isinstance(error, CmsError)


class TestAPIError:
    """Test cases for APIError."""

    def test_str_includes_backend_and_status(self):
        error = APIError("Not Found", 404, "GitLab")

        assert str(error) == "GitLab API error (404): Not Found"
        assert error.status == 404
        assert error.backend == "GitLab"

    def test_str_without_status(self):
        assert str(APIError("bad payload", None, "GitLab")) == "GitLab API error: bad payload"


class TestOtherErrors:
    """Test cases for the remaining error types."""

    def test_transport_error(self):
        error = TransportError("https://x/config.yml", "connection refused")

        assert str(error) == "Request to https://x/config.yml failed: connection refused"
        assert error.url == "https://x/config.yml"

    def test_editorial_workflow_flag(self):
        error = EditorialWorkflowError("content is not under editorial workflow", True)

        assert error.not_under_editorial_workflow is True
        assert error.message == "content is not under editorial workflow"

    def test_cursor_action_error_lists_available(self):
        error = CursorActionError("prev", {"next", "last"})

        assert error.available == ["last", "next"]
        assert "available: last, next" in str(error)

    def test_cursor_action_error_with_nothing_available(self):
        assert "available: none" in str(CursorActionError("next", []))

    def test_unsupported_capability(self):
        error = UnsupportedCapabilityError("gitlab", "unpublished_entries")

        assert str(error) == "Backend 'gitlab' does not support unpublished_entries"

    def test_backend_not_found(self):
        error = BackendNotFoundError("bitbucket")

        assert str(error) == "Backend not found: bitbucket"
        assert error.name == "bitbucket"
