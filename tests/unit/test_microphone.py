"""
Unit tests for host microphone capture.
The sounddevice backend is replaced with mocks; no audio hardware is used.
"""
import sys
import wave
import io
from unittest.mock import MagicMock, patch

import pytest

from voice_journal.exceptions import DeviceNotFound, FormatUnsupported, PermissionDenied
from voice_journal.services.microphone import MicrophoneCaptureSource, capture_error_from_portaudio
from voice_journal.services.recording import CaptureConstraints


class PortAudioError(Exception):
    pass


def _backend():
    backend = MagicMock()
    backend.PortAudioError = PortAudioError
    return backend


@pytest.mark.parametrize("message,error_type", [
    ("Error opening InputStream: Permission denied", PermissionDenied),
    ("Invalid sample rate [PaErrorCode -9997]", FormatUnsupported),
    ("Invalid number of channels", FormatUnsupported),
    ("No input device matching ''", DeviceNotFound),
])
def test_portaudio_error_mapping(message, error_type):
    assert isinstance(capture_error_from_portaudio(Exception(message)), error_type)


@pytest.mark.asyncio
async def test_missing_backend_reports_device_not_found():
    source = MicrophoneCaptureSource()

    with patch.dict(sys.modules, {"sounddevice": None}):
        with pytest.raises(DeviceNotFound):
            await source.open(CaptureConstraints())


@pytest.mark.asyncio
async def test_open_starts_int16_stream():
    backend = _backend()
    source = MicrophoneCaptureSource(block_seconds=0.5)

    with patch.object(MicrophoneCaptureSource, "_load_backend", return_value=backend):
        await source.open(CaptureConstraints(sample_rate=16000))

    kwargs = backend.RawInputStream.call_args.kwargs
    assert kwargs["dtype"] == "int16"
    assert kwargs["samplerate"] == 16000
    assert kwargs["blocksize"] == 8000
    backend.RawInputStream.return_value.start.assert_called_once()

    source.close()
    backend.RawInputStream.return_value.close.assert_called()


@pytest.mark.asyncio
async def test_rejected_settings_map_to_capture_error():
    backend = _backend()
    backend.check_input_settings.side_effect = backend.PortAudioError("Invalid sample rate")
    source = MicrophoneCaptureSource()

    with patch.object(MicrophoneCaptureSource, "_load_backend", return_value=backend):
        with pytest.raises(FormatUnsupported):
            await source.open(CaptureConstraints())


def test_finalize_wraps_pcm_in_wav():
    source = MicrophoneCaptureSource()
    source._sample_rate = 16000

    blob = source.finalize([b"\x00\x00" * 16000])

    with wave.open(io.BytesIO(blob), "rb") as wav_file:
        assert wav_file.getframerate() == 16000
        assert wav_file.getnframes() == 16000
    assert source.mime_type == "audio/wav"
    assert source.kind == "microphone"
