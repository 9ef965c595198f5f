"""Tests for opening audio files and reading frames in canonical order."""

import logging
from pathlib import Path

import numpy as np
import pytest
import soundfile as sf

from cafmeta.format import CafError, ChannelLayoutError, open_audio_file
from cafmeta.format import channel_map as channel_map_module
from cafmeta.format.codec import FrameReader, FrameWriter
from cafmeta.format.layouts import ChannelRole, LayoutTag
from cafmeta.format.types import ChannelLayout
from cafmeta.format.writer import save_caf


def constant_channels(num_channels: int, num_frames: int) -> np.ndarray:
    """Planar audio where channel i holds the constant value (i + 1) / 10."""
    values = (np.arange(num_channels, dtype=np.float32) + 1) / 10
    return np.repeat(values[:, np.newaxis], num_frames, axis=1)


class TestOpenAudioFile:
    """Tests for open_audio_file."""

    def test_caf_with_layout_and_metadata(self, tmp_path: Path) -> None:
        path = tmp_path / "film.caf"
        save_caf(
            path,
            constant_channels(6, 100),
            48000,
            layout=ChannelLayout(tag=LayoutTag.MPEG_5_1_C),
            info={"title": "Reel 1"},
        )

        audio = open_audio_file(path)

        assert audio.is_caf
        assert audio.description.sample_rate == 48000.0
        assert audio.description.num_channels == 6
        assert audio.description.length_in_frames == 100
        assert audio.description.bits_per_sample == 32
        assert audio.description.uses_float
        assert audio.description.format_name == "lpcm"
        assert audio.layout == ChannelLayout(tag=LayoutTag.MPEG_5_1_C)
        assert audio.channel_map == (0, 2, 1, 4, 5, 3)
        assert audio.metadata["title"] == "Reel 1"

    def test_caf_without_layout(self, tmp_path: Path) -> None:
        path = tmp_path / "stereo.caf"
        save_caf(path, constant_channels(2, 10), 44100)

        audio = open_audio_file(path)

        assert audio.layout is None
        assert audio.channel_map == (0, 1)
        assert len(audio.metadata) == 0

    def test_non_caf_file(self, tmp_path: Path) -> None:
        path = tmp_path / "tone.wav"
        sf.write(path, np.zeros((50, 3), dtype=np.float32), 22050, subtype="PCM_16")

        audio = open_audio_file(path)

        assert not audio.is_caf
        assert audio.description.num_channels == 3
        assert audio.description.sample_rate == 22050.0
        assert audio.description.bits_per_sample == 16
        assert not audio.description.uses_float
        assert audio.description.length_in_frames == 50
        assert audio.channel_map == (0, 1, 2)
        assert dict(audio.metadata) == {}

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(CafError, match="not found"):
            open_audio_file(tmp_path / "missing.caf")

    def test_directory(self, tmp_path: Path) -> None:
        with pytest.raises(CafError, match="Cannot read"):
            open_audio_file(tmp_path)

    def test_unreadable_file(self, tmp_path: Path) -> None:
        path = tmp_path / "junk.caf"
        path.write_bytes(b"this is not audio at all" * 10)

        with pytest.raises(CafError):
            open_audio_file(path)

    def test_layout_count_mismatch(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        path = tmp_path / "mismatch.caf"
        save_caf(path, constant_channels(2, 10), 44100, layout=ChannelLayout(LayoutTag.MPEG_5_1_A))

        with caplog.at_level(logging.WARNING):
            audio = open_audio_file(path)

        assert audio.channel_map == (0, 1)
        assert "declares 6 channels" in caplog.text

    def test_strict_layout(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = tmp_path / "stereo.caf"
        save_caf(path, constant_channels(2, 10), 44100, layout=ChannelLayout(LayoutTag.STEREO))
        monkeypatch.setattr(
            channel_map_module,
            "roles_for_layout",
            lambda layout: (ChannelRole.RIGHT, ChannelRole.RIGHT),
        )

        assert open_audio_file(path).channel_map == (0, 1)
        with pytest.raises(ChannelLayoutError):
            open_audio_file(path, strict_layout=True)

    def test_audio_file_is_frozen(self, tmp_path: Path) -> None:
        path = tmp_path / "stereo.caf"
        save_caf(path, constant_channels(2, 10), 44100)
        audio = open_audio_file(path)

        with pytest.raises(AttributeError):
            audio.channel_map = (1, 0)  # type: ignore[misc]


class TestFrameReads:
    """Tests for reading frames in canonical order."""

    @pytest.fixture
    def film_file(self, tmp_path: Path) -> Path:
        path = tmp_path / "film.caf"
        save_caf(
            path,
            constant_channels(6, 64),
            48000,
            layout=ChannelLayout(tag=LayoutTag.MPEG_5_1_C),
        )
        return path

    def test_canonical_order(self, film_file: Path) -> None:
        audio = open_audio_file(film_file)

        frames = audio.read_frames(0, 64)

        # File order L C R Ls Rs LFE holds 0.1 .. 0.6
        expected = np.array([0.1, 0.3, 0.2, 0.6, 0.4, 0.5], dtype=np.float32)
        assert frames.shape == (6, 64)
        assert frames.dtype == np.float32
        np.testing.assert_allclose(frames[:, 0], expected)
        np.testing.assert_allclose(frames[:, -1], expected)

    def test_extra_destination_channels_are_silent(self, film_file: Path) -> None:
        frames = open_audio_file(film_file).read_frames(0, 8, num_dest_channels=8)

        assert frames.shape == (8, 8)
        assert np.all(frames[6:] == 0.0)
        assert np.all(frames[:6] != 0.0)

    def test_fewer_destination_channels(self, film_file: Path) -> None:
        frames = open_audio_file(film_file).read_frames(0, 4, num_dest_channels=2)

        np.testing.assert_allclose(frames[:, 0], [0.1, 0.3])

    def test_out_of_range_frames_are_zero(self, film_file: Path) -> None:
        audio = open_audio_file(film_file)

        frames = audio.read_frames(60, 10)

        assert np.all(frames[:, :4] != 0.0)
        assert np.all(frames[:, 4:] == 0.0)

    def test_negative_start(self, film_file: Path) -> None:
        frames = open_audio_file(film_file).read_frames(-3, 5)

        assert np.all(frames[:, :3] == 0.0)
        assert np.all(frames[:, 3:] != 0.0)

    def test_entirely_outside(self, film_file: Path) -> None:
        frames = open_audio_file(film_file).read_frames(1000, 16)
        assert frames.shape == (6, 16)
        assert not frames.any()

    def test_negative_count(self, film_file: Path) -> None:
        with open_audio_file(film_file).open_reader() as reader:
            with pytest.raises(ValueError):
                reader.read(0, -1)

    def test_independent_readers(self, film_file: Path) -> None:
        audio = open_audio_file(film_file)

        with audio.open_reader() as first, audio.open_reader() as second:
            a = first.read(0, 16)
            second.read(32, 16)
            b = first.read(0, 16)

        np.testing.assert_array_equal(a, b)

    def test_channel_map_size_must_match(self, film_file: Path) -> None:
        with pytest.raises(ValueError):
            FrameReader(film_file, (0, 1))


class TestFrameWriter:
    """Tests for writing CAF files through the codec."""

    def test_write_and_read_back(self, tmp_path: Path) -> None:
        path = tmp_path / "written.caf"
        data = np.vstack(
            [np.linspace(-1, 1, 32, dtype=np.float32), np.linspace(1, -1, 32, dtype=np.float32)]
        )

        with FrameWriter(path, 44100, 2) as writer:
            assert writer.write(data, 32) == 32

        audio = open_audio_file(path)
        assert audio.is_caf
        assert audio.description.length_in_frames == 32
        np.testing.assert_allclose(audio.read_frames(0, 32), data, atol=1e-7)

    def test_partial_write(self, tmp_path: Path) -> None:
        path = tmp_path / "partial.caf"

        with FrameWriter(path, 48000, 1) as writer:
            writer.write(np.ones((1, 100)), 40)

        assert sf.info(str(path)).frames == 40

    def test_shape_mismatch(self, tmp_path: Path) -> None:
        with FrameWriter(tmp_path / "bad.caf", 48000, 2) as writer:
            with pytest.raises(ValueError):
                writer.write(np.zeros((3, 10)), 10)
            with pytest.raises(ValueError):
                writer.write(np.zeros((2, 10)), 11)
