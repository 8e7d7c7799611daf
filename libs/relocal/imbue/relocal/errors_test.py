from imbue.relocal.errors import RelocalError
from imbue.relocal.errors import StaleSessionError
from imbue.relocal.errors import TransferError


def test_format_message_appends_help_text() -> None:
    error = StaleSessionError("demo")

    message = error.format_message()

    assert message.startswith("Stale session demo: FIFOs already exist.")
    assert "[If the previous session crashed, run `relocal destroy demo`.]" in message


def test_format_message_without_help_text_is_plain() -> None:
    assert RelocalError("boom").format_message() == "boom"


def test_transfer_error_uses_placeholder_for_empty_stderr() -> None:
    assert str(TransferError("pull", "  ")) == "rsync pull failed: no error output"
