"""
Tests for the main.py command-line front end.
"""
import json
from pathlib import Path

import pytest

from main import main
from sfx_loudness.wav_codec import (
    decode_wav,
    decode_wav_from_base64,
    encode_wav,
    encode_wav_to_base64,
    make_audio,
)
from sfx_loudness.loudness_meter import measure_audio


@pytest.fixture
def loud_wav(temp_dir, sine_1k, sample_rate):
    """1 kHz sine at about -9 LUFS written as a WAV file."""
    path = Path(temp_dir) / "loud.wav"
    path.write_bytes(encode_wav(make_audio([sine_1k], sample_rate)))
    return path


@pytest.fixture
def loud_b64(temp_dir, sine_1k, sample_rate):
    """The same clip as base64 text."""
    path = Path(temp_dir) / "loud.b64"
    path.write_text(encode_wav_to_base64(make_audio([sine_1k], sample_rate)), encoding='utf-8')
    return path


@pytest.fixture
def silent_wav(temp_dir, silence, sample_rate):
    path = Path(temp_dir) / "silent.wav"
    path.write_bytes(encode_wav(make_audio([silence], sample_rate)))
    return path


class TestMeasureCommand:
    """measure subcommand."""

    def test_out_of_tolerance_exits_one(self, loud_wav, capsys):
        assert main(["measure", str(loud_wav)]) == 1
        out = capsys.readouterr().out
        assert "LUFS" in out
        assert "Recommended gain" in out

    def test_target_override_brings_clip_in_tolerance(self, loud_wav):
        assert main(["--target", "-9", "measure", str(loud_wav)]) == 0

    def test_tolerance_override(self, loud_wav):
        assert main(["--tolerance", "8", "measure", str(loud_wav)]) == 0

    def test_base64_input(self, loud_b64):
        assert main(["--target", "-9", "measure", str(loud_b64), "--base64"]) == 0

    def test_json_output(self, loud_wav, capsys):
        main(["--json", "measure", str(loud_wav)])
        report = json.loads(capsys.readouterr().out)

        assert report["sample_rate"] == 48000
        assert report["channels"] == 1
        assert report["stats"]["lufs"] == pytest.approx(-9.03, abs=0.2)
        assert report["recommended_gain"] == pytest.approx(0.447, abs=0.01)
        assert report["within_tolerance"] is False

    def test_json_silence_reports_null_loudness(self, silent_wav, capsys):
        assert main(["--json", "measure", str(silent_wav)]) == 0
        report = json.loads(capsys.readouterr().out)

        assert report["stats"]["lufs"] is None
        assert report["stats"]["peak_db"] is None
        assert report["recommended_gain"] == 1.0

    def test_corrupt_input_exits_two(self, temp_dir, capsys):
        path = Path(temp_dir) / "broken.wav"
        path.write_bytes(b"RIFF" + b"\x00" * 60)

        assert main(["measure", str(path)]) == 2
        assert "Cannot process" in capsys.readouterr().err

    def test_invalid_base64_exits_two(self, temp_dir):
        path = Path(temp_dir) / "broken.b64"
        path.write_text("@@@ not base64 @@@", encoding='utf-8')

        assert main(["measure", str(path), "--base64"]) == 2

    def test_missing_file_exits_two(self, temp_dir):
        assert main(["measure", str(Path(temp_dir) / "nope.wav")]) == 2

    def test_non_utf8_base64_file_exits_two(self, temp_dir, capsys):
        path = Path(temp_dir) / "binary.b64"
        path.write_bytes(b"\xff\xfe\x00garbage")

        assert main(["measure", str(path), "--base64"]) == 2
        assert "Cannot process" in capsys.readouterr().err

    def test_binary_file_for_normalize_base64_exits_two(self, temp_dir):
        path = Path(temp_dir) / "binary.b64"
        path.write_bytes(b"\xff\xfe\x00garbage")
        out = Path(temp_dir) / "out.b64"

        assert main(["normalize", str(path), "-o", str(out), "--base64"]) == 2
        assert not out.exists()


class TestNormalizeCommand:
    """normalize subcommand."""

    def test_writes_normalized_wav(self, loud_wav, temp_dir):
        out = Path(temp_dir) / "out.wav"

        assert main(["normalize", str(loud_wav), "-o", str(out)]) == 0
        stats = measure_audio(decode_wav(out.read_bytes()))
        assert stats.lufs == pytest.approx(-16.0, abs=0.05)

        assert main(["measure", str(out)]) == 0

    def test_target_override(self, loud_wav, temp_dir):
        out = Path(temp_dir) / "out.wav"

        assert main(["--target", "-20", "normalize", str(loud_wav), "-o", str(out)]) == 0
        stats = measure_audio(decode_wav(out.read_bytes()))
        assert stats.lufs == pytest.approx(-20.0, abs=0.05)

    def test_base64_round_trip(self, loud_b64, temp_dir):
        out = Path(temp_dir) / "out.b64"

        assert main(["normalize", str(loud_b64), "-o", str(out), "--base64"]) == 0
        stats = measure_audio(decode_wav_from_base64(out.read_text(encoding='utf-8')))
        assert stats.lufs == pytest.approx(-16.0, abs=0.05)

    def test_json_output(self, loud_wav, temp_dir, capsys):
        out = Path(temp_dir) / "out.wav"

        main(["--json", "normalize", str(loud_wav), "-o", str(out)])
        report = json.loads(capsys.readouterr().out)

        assert report["output"] == str(out)
        assert report["applied_gain"] == pytest.approx(0.447, abs=0.01)
        assert report["after"]["lufs"] == pytest.approx(-16.0, abs=0.05)

    def test_requires_output(self, loud_wav):
        with pytest.raises(SystemExit):
            main(["normalize", str(loud_wav)])


class TestConfiguration:
    """Config directory and override handling."""

    def test_config_directory(self, loud_wav, temp_dir):
        config_dir = Path(temp_dir) / "cfg"
        config_dir.mkdir()
        (config_dir / "loudness.yaml").write_text(
            "loudness:\n  target_lufs: -9.0\n", encoding='utf-8'
        )

        assert main(["--config", str(config_dir), "measure", str(loud_wav)]) == 0

    def test_missing_config_uses_defaults(self, loud_wav, temp_dir):
        empty_dir = Path(temp_dir) / "empty"
        empty_dir.mkdir()

        assert main(["--config", str(empty_dir), "measure", str(loud_wav)]) == 1

    def test_invalid_config_exits_two(self, loud_wav, temp_dir, capsys):
        config_dir = Path(temp_dir) / "bad"
        config_dir.mkdir()
        (config_dir / "loudness.yaml").write_text(
            "loudness:\n  tolerance_db: -3\n", encoding='utf-8'
        )

        assert main(["--config", str(config_dir), "measure", str(loud_wav)]) == 2
        assert "Configuration error" in capsys.readouterr().err

    def test_invalid_override_exits_two(self, loud_wav):
        assert main(["--tolerance", "0", "measure", str(loud_wav)]) == 2

    def test_subcommand_required(self):
        with pytest.raises(SystemExit):
            main([])
