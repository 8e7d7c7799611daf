import pytest
from pydantic import ValidationError

from imbue.relocal.errors import InvalidSessionNameError
from imbue.relocal.errors import RelocalError
from imbue.relocal.primitives import SessionName
from imbue.relocal.primitives import SessionState
from imbue.relocal.primitives import TransferDirection
from imbue.relocal.utils.models import FrozenModel


class _HasSessionName(FrozenModel):
    name: SessionName


@pytest.mark.parametrize("name", ["my-proj", "feature_x", "A1", "a"])
def test_session_name_accepts_letters_digits_hyphens_underscores(name: str) -> None:
    assert SessionName(name) == name


@pytest.mark.parametrize("name", ["", "has space", "a/b", "semi;colon", "dollar$", "../up", "tab\t", "café"])
def test_session_name_rejects_unsafe_names(name: str) -> None:
    with pytest.raises(InvalidSessionNameError):
        SessionName(name)


def test_invalid_session_name_is_user_facing() -> None:
    with pytest.raises(RelocalError, match="Invalid session name"):
        SessionName("bad name")


def test_session_name_validates_as_pydantic_field() -> None:
    assert _HasSessionName(name="ok-name").name == "ok-name"
    with pytest.raises(ValidationError):
        _HasSessionName(name="not ok")


def test_transfer_direction_values_are_the_request_tokens() -> None:
    assert TransferDirection.PUSH == "push"
    assert TransferDirection.PULL == "pull"


def test_session_state_values_are_upper_case_names() -> None:
    assert SessionState.STALE_CHECK.value == "STALE_CHECK"
