#!/usr/bin/env python3
"""
SFX Loudness Engine - CLI Entry Point

Measure and normalize single 16-bit PCM WAV clips.

Usage:
    python main.py measure cue.wav
    python main.py measure cue.b64 --base64
    python main.py normalize cue.wav -o cue_normalized.wav
    python main.py normalize cue.wav -o cue.b64 --base64 --target -18

Exit status:
    0  clip measured/normalized and within tolerance
    1  clip outside the loudness window or over the peak ceiling
    2  unreadable input or invalid configuration
"""

import argparse
import json
import logging
import math
import sys
from pathlib import Path
from typing import List, Optional

from colorama import Fore, Style, just_fix_windows_console
from pydantic import ValidationError

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from sfx_loudness import (
    ConfigLoader,
    ConfigLoadError,
    DecodedAudio,
    LoudnessEngineError,
    LoudnessStats,
    LoudnessTargets,
    decode_wav,
    decode_wav_from_base64,
    encode_wav,
    encode_wav_to_base64,
    measure_audio,
    normalize_to_target,
    recommended_gain,
)

logger = logging.getLogger(__name__)


def print_info(message: str):
    """Print info message."""
    print(f"{Fore.CYAN}ℹ{Style.RESET_ALL}  {message}")


def print_warning(message: str):
    """Print warning message."""
    print(f"{Fore.YELLOW}⚠{Style.RESET_ALL}  {message}")


def print_error(message: str):
    """Print error message."""
    print(f"{Fore.RED}✗{Style.RESET_ALL}  {message}", file=sys.stderr)


def print_success(message: str):
    """Print success message."""
    print(f"{Fore.GREEN}✓{Style.RESET_ALL}  {message}")


def format_db(value: float) -> str:
    if not math.isfinite(value):
        return '-∞'
    return f"{value:.2f}"


def json_number(value: float) -> Optional[float]:
    """JSON has no infinities; report them as null."""
    return value if math.isfinite(value) else None


def stats_to_dict(stats: LoudnessStats) -> dict:
    return {
        "rms": stats.rms,
        "lufs": json_number(stats.lufs),
        "peak": stats.peak,
        "peak_db": json_number(stats.peak_db),
    }


def load_clip(path: Path, as_base64: bool) -> DecodedAudio:
    """Read a WAV file, or a text file holding a base64 WAV payload."""
    if as_base64:
        return decode_wav_from_base64(path.read_bytes())
    return decode_wav(path.read_bytes())


def resolve_targets(args: argparse.Namespace) -> LoudnessTargets:
    """Configured targets with command-line overrides applied."""
    targets = ConfigLoader(args.config).load_targets_or_default()

    overrides = {
        key: value
        for key, value in (
            ("target_lufs", args.target),
            ("peak_ceiling_db", args.ceiling),
            ("tolerance_db", args.tolerance),
        )
        if value is not None
    }
    if not overrides:
        return targets

    try:
        return LoudnessTargets(**{**targets.model_dump(), **overrides})
    except ValidationError as e:
        raise ConfigLoadError(f"Invalid command-line targets: {e}")


def run_measure(args: argparse.Namespace, targets: LoudnessTargets) -> int:
    """Measure one clip and report it against the targets."""
    audio = load_clip(Path(args.input), args.base64)
    stats = measure_audio(audio)
    gain = recommended_gain(stats, targets.target_lufs, targets.peak_ceiling_db)
    within = targets.is_within_tolerance(stats)

    if args.json:
        print(json.dumps({
            "input": str(args.input),
            "sample_rate": audio.sample_rate,
            "channels": audio.num_channels,
            "frames": audio.num_frames,
            "stats": stats_to_dict(stats),
            "recommended_gain": gain,
            "within_tolerance": within,
        }, indent=2))
    else:
        deviation = (
            f"{stats.lufs - targets.target_lufs:+.2f}"
            if math.isfinite(stats.lufs) else 'n/a'
        )
        print_info(
            f"{Path(args.input).name}: {audio.num_channels} ch, "
            f"{audio.sample_rate} Hz, {audio.duration_seconds:.3f} s"
        )
        print(f"   LUFS: {format_db(stats.lufs)} (Δ={deviation} dB)")
        print(f"   Peak: {format_db(stats.peak_db)} dBFS")
        print(f"   RMS:  {stats.rms:.6f}")
        print(f"   Recommended gain: {gain:.4f}")
        if within:
            print_success("Within tolerance")
        else:
            print_warning(
                f"Outside {targets.target_lufs} LUFS ±{targets.tolerance_db} dB "
                f"or above {targets.peak_ceiling_db} dBFS"
            )

    return 0 if within else 1


def run_normalize(args: argparse.Namespace, targets: LoudnessTargets) -> int:
    """Normalize one clip and write the result."""
    audio = load_clip(Path(args.input), args.base64)
    result = normalize_to_target(audio, targets.target_lufs, targets.peak_ceiling_db)

    output_path = Path(args.output)
    if args.base64:
        output_path.write_text(encode_wav_to_base64(result.updated), encoding='utf-8')
    else:
        output_path.write_bytes(encode_wav(result.updated))
    logger.info(f"Wrote {output_path}")

    if args.json:
        print(json.dumps({
            "input": str(args.input),
            "output": str(output_path),
            "applied_gain": result.applied_gain,
            "before": stats_to_dict(result.before),
            "after": stats_to_dict(result.after),
        }, indent=2))
    else:
        print_info(f"{Path(args.input).name} → {output_path.name}")
        print(f"   Gain: {result.applied_gain:.4f}")
        print(f"   LUFS: {format_db(result.before.lufs)} → {format_db(result.after.lufs)}")
        print(f"   Peak: {format_db(result.before.peak_db)} → {format_db(result.after.peak_db)} dBFS")
        print_success("Normalized")

    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Measure and normalize 16-bit PCM WAV clips",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s measure cue.wav
  %(prog)s measure cue.b64 --base64 --json
  %(prog)s normalize cue.wav -o cue_normalized.wav --target -18
        """,
    )

    # Shared options
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Directory holding loudness.yaml (default: ./configs)",
    )
    parser.add_argument("--target", type=float, default=None, help="Target loudness in LUFS")
    parser.add_argument("--ceiling", type=float, default=None, help="Peak ceiling in dBFS")
    parser.add_argument("--tolerance", type=float, default=None, help="Loudness window in ± dB")
    parser.add_argument("--json", action="store_true", help="Print machine-readable JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    measure = subparsers.add_parser("measure", help="Measure loudness and peak of a clip")
    measure.add_argument("input", type=str, help="WAV file (or base64 text with --base64)")
    measure.add_argument("--base64", action="store_true", help="Input holds base64 text")

    normalize = subparsers.add_parser("normalize", help="Normalize a clip to the target")
    normalize.add_argument("input", type=str, help="WAV file (or base64 text with --base64)")
    normalize.add_argument("-o", "--output", type=str, required=True, help="Output path")
    normalize.add_argument("--base64", action="store_true", help="Read and write base64 text")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    just_fix_windows_console()
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        targets = resolve_targets(args)
        if args.command == "measure":
            return run_measure(args, targets)
        return run_normalize(args, targets)

    except ConfigLoadError as e:
        print_error(f"Configuration error: {e}")
        return 2

    except LoudnessEngineError as e:
        print_error(f"Cannot process {args.input}: {e}")
        return 2

    except OSError as e:
        print_error(f"I/O error: {e}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
