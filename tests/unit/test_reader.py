"""Unit tests for the decode adapter."""

import io
import logging

import numpy as np
import pytest
import soundfile as sf

from audio_ingest.audio.reader import DecodeResult, DecodeStatus, read_audio_data

from conftest import FakeDecoder, FakeStream, FakeTranscoder, sine


class TestDecodeResult:
    """Test DecodeResult dataclass."""

    def test_unpacks_as_tuple(self):
        """Test that a result unpacks as pcm, channels, ok."""
        pcm = np.ones(4, dtype=np.float32)
        decoded, channels, ok = DecodeResult(pcm=pcm)
        assert decoded is pcm
        assert channels == []
        assert ok is True

    def test_failure(self):
        """Test failure results carry their cause."""
        result = DecodeResult.failure(DecodeStatus.READ_FAILED, "boom")
        assert not result.ok
        assert result.status is DecodeStatus.READ_FAILED
        assert result.message == "boom"
        assert result.frame_count == 0


class TestSoundfilePath:
    """Decode real WAV files through libsndfile."""

    def test_mono_file(self, mono_wav):
        """Test decoding a 16kHz mono file."""
        path, samples = mono_wav
        result = read_audio_data(str(path))
        assert result.ok
        assert result.channels == []
        np.testing.assert_allclose(result.pcm, samples, atol=1e-6)

    def test_path_object(self, mono_wav):
        """Test that pathlib paths are accepted."""
        path, samples = mono_wav
        result = read_audio_data(path)
        assert result.ok
        assert len(result.pcm) == len(samples)

    def test_stereo_file(self, stereo_wav):
        """Test that stereo output sums channels and keeps both."""
        path, left, right = stereo_wav
        result = read_audio_data(str(path), stereo=True)
        assert result.ok
        assert len(result.channels) == 2
        np.testing.assert_allclose(result.channels[0], left, atol=1e-6)
        np.testing.assert_allclose(result.channels[1], right, atol=1e-6)
        np.testing.assert_allclose(result.pcm, left + right, atol=1e-6)
        assert all(len(c) == len(result.pcm) for c in result.channels)

    def test_stereo_file_as_mono(self, stereo_wav):
        """Test that a stereo file read as mono is downmixed by the decoder."""
        path, left, right = stereo_wav
        result = read_audio_data(str(path), stereo=False)
        assert result.ok
        assert result.channels == []
        np.testing.assert_allclose(result.pcm, (left + right) / 2, atol=1e-6)

    def test_stereo_request_on_mono_source(self, mono_wav):
        """Test that stereo on a mono file gives the plain mono decode."""
        path, _ = mono_wav
        direct = read_audio_data(str(path))
        result = read_audio_data(str(path), stereo=True)
        assert result.ok
        assert result.channels == []
        np.testing.assert_array_equal(result.pcm, direct.pcm)

    def test_resamples_to_pipeline_rate(self, tmp_path):
        """Test that 8kHz audio comes out at 16kHz."""
        samples = sine(duration=0.5, sample_rate=8000)
        path = tmp_path / "low.wav"
        sf.write(str(path), samples, 8000, subtype="FLOAT")

        result = read_audio_data(str(path))
        assert result.ok
        assert len(result.pcm) == 2 * len(samples)
        assert result.pcm.dtype == np.float32

    def test_bytes_source(self, mono_wav):
        """Test decoding from an in-memory buffer."""
        path, samples = mono_wav
        result = read_audio_data(path.read_bytes())
        assert result.ok
        np.testing.assert_allclose(result.pcm, samples, atol=1e-6)

    def test_stdin_source(self, mono_wav, monkeypatch, caplog):
        """Test reading everything from stdin."""
        path, samples = mono_wav
        data = path.read_bytes()
        monkeypatch.setattr("sys.stdin", io.TextIOWrapper(io.BytesIO(data)))
        caplog.set_level(logging.INFO)

        result = read_audio_data("-")
        assert result.ok
        np.testing.assert_allclose(result.pcm, samples, atol=1e-6)
        assert f"Read {len(data)} bytes from stdin" in caplog.text

    def test_missing_file_without_transcoder(self, tmp_path):
        """Test that an unopenable file fails without fallback."""
        result = read_audio_data(str(tmp_path / "missing.wav"))
        assert not result.ok
        assert result.status is DecodeStatus.OPEN_FAILED
        assert len(result.pcm) == 0
        assert "missing.wav" in result.message

    def test_garbage_bytes(self):
        """Test that undecodable bytes fail cleanly."""
        result = read_audio_data(b"definitely not audio")
        assert result.status is DecodeStatus.OPEN_FAILED


class TestFallback:
    """Decode through the transcoding fallback with stub capabilities."""

    def test_transcode_fallback(self):
        """Test that the transcoded buffer's length decides the frame count."""
        stream = FakeStream(sine(duration=0.25))
        decoder = FakeDecoder({b"WAVDATA": stream})
        transcoder = FakeTranscoder(b"WAVDATA")

        result = read_audio_data("clip.m4a", decoder=decoder, transcoder=transcoder)

        assert result.ok
        assert result.frame_count == stream.frame_count() == 4000
        assert transcoder.calls == ["clip.m4a"]
        assert [opened[0] for opened in decoder.opened] == ["clip.m4a", b"WAVDATA"]
        assert stream.closed

    def test_transcode_fallback_stereo(self):
        """Test stereo decoding of a transcoded buffer."""
        interleaved = np.array([0.1, 0.2, 0.3, 0.4], dtype=np.float32)
        decoder = FakeDecoder({b"WAV": FakeStream(interleaved, channels=2)})

        result = read_audio_data("a.opus", stereo=True, decoder=decoder,
                                 transcoder=FakeTranscoder(b"WAV"))

        assert result.ok
        np.testing.assert_allclose(result.pcm, [0.3, 0.7], atol=1e-6)
        assert decoder.opened[-1][1] == 2

    def test_transcode_failure(self):
        """Test that a failing transcoder ends the decode."""
        result = read_audio_data("clip.m4a", decoder=FakeDecoder(),
                                 transcoder=FakeTranscoder(None))
        assert result.status is DecodeStatus.TRANSCODE_FAILED

    def test_transcoded_output_unreadable(self):
        """Test that transcoding is attempted only once."""
        transcoder = FakeTranscoder(b"STILL BAD")
        decoder = FakeDecoder()
        result = read_audio_data("clip.m4a", decoder=decoder, transcoder=transcoder)
        assert result.status is DecodeStatus.OPEN_FAILED
        assert len(transcoder.calls) == 1
        assert len(decoder.opened) == 2

    def test_no_fallback_when_primary_succeeds(self):
        """Test that the transcoder is untouched on a direct decode."""
        transcoder = FakeTranscoder(b"WAV")
        decoder = FakeDecoder({"clip.wav": FakeStream(np.zeros(10))})
        result = read_audio_data("clip.wav", decoder=decoder, transcoder=transcoder)
        assert result.ok
        assert transcoder.calls == []


class TestStreamFailures:
    """Length and read failures are hard failures."""

    @pytest.mark.parametrize(
        "stream_kwargs, status",
        [
            ({"length_error": True}, DecodeStatus.LENGTH_QUERY_FAILED),
            ({"read_error": True}, DecodeStatus.READ_FAILED),
            ({"reported_frames": 1200}, DecodeStatus.SHORT_READ),
        ],
    )
    def test_failure_closes_stream(self, stream_kwargs, status):
        """Test the failure cause and that the stream is always closed."""
        stream = FakeStream(np.zeros(1000), **stream_kwargs)
        decoder = FakeDecoder({"clip.wav": stream})

        result = read_audio_data("clip.wav", decoder=decoder)

        assert result.status is status
        assert not result.ok
        assert len(result.pcm) == 0
        assert stream.closed
