"""Basic unit tests for the watchgpt package."""

from watchgpt import (
    WatchGPT,
    ChatSession,
    KeySender,
    KeyReceiver,
    WatchGPTError,
    ChatAPIError,
    CredentialStoreError,
    KeyTransferError,
    AudioPlayerError,
    ConnectionError,
    __version__,
)
from watchgpt.models.completion import AIModel
from watchgpt.models.mode import ConversationMode, ERROR_PREFIX, profile_for
from watchgpt.transport.base import ActivationState


def test_version():
    assert __version__ == "0.1.0"


def test_public_exports():
    assert WatchGPT is not None
    assert ChatSession is not None
    assert KeySender is not None
    assert KeyReceiver is not None


def test_error_hierarchy():
    assert issubclass(ChatAPIError, WatchGPTError)
    assert issubclass(CredentialStoreError, WatchGPTError)
    assert issubclass(KeyTransferError, WatchGPTError)
    assert issubclass(AudioPlayerError, WatchGPTError)
    assert issubclass(ConnectionError, WatchGPTError)


def test_error_attributes():
    err = WatchGPTError(code="test_code", message="something broke")
    assert err.code == "test_code"
    assert str(err) == "something broke"
    assert err.details is None

    api_err = ChatAPIError("HTTP error: 502", code="http_error", status_code=502)
    assert api_err.code == "http_error"
    assert api_err.status_code == 502
    assert api_err.details == {"status_code": 502}

    assert AudioPlayerError().code == "playback_failed"


def test_mode_profiles():
    general = profile_for(ConversationMode.GENERAL)
    study = profile_for("study")
    assert general.welcome_text == "Hello! How can I help you today?"
    assert study.welcome_text != general.welcome_text
    assert general.error_prefix == study.error_prefix == ERROR_PREFIX
    assert profile_for("no-such-mode") == general


def test_constants():
    assert ActivationState.ACTIVATED == "activated"
    assert AIModel.GPT5_MINI.display_name == "GPT-5 mini"
    assert AIModel.GPT5_2.cost_indicator == "$$$"
