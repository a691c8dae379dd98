"""Workbench CLI: measure filter behaviour and inspect banks, windows and WAV spectra."""

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from spectrum_analyzer.config import (
    BANK_MAX_FREQ,
    BANK_MIN_FREQ,
    DEFAULT_RESOLUTION,
    DEFAULT_UPDATE_RATE,
    DISPLAY_WIDTH_4K,
    AnalyzerConfig,
    WorkbenchConfig,
)
from spectrum_analyzer.dsp.bank import bin_lookup
from spectrum_analyzer.dsp.dft import Dft
from spectrum_analyzer.dsp.filter_args import Filter, FilterArgs
from spectrum_analyzer.dsp.iir import Cascade, section_type
from spectrum_analyzer.dsp.signals import SineSweeper
from spectrum_analyzer.dsp.windows import WindowFunction

logger = logging.getLogger(__name__)

FILTER_HELP = {
    "biquad": "Biquad filters",
    "svf": "State Variable Filter with Topology Preserving Transform",
    "cytomic": "Cytomic SVF, a high-stability variant",
    "dft": "Discrete Fourier Transform",
}

BANDWIDTH_QS = [3.0, 5.0, 8.0, 16.0, 32.0, 42.0, 64.0, 128.0, 256.0, 512.0]

INDENT = 2
LABEL_W = 32  # includes colon
VALUE_W = 22


def _header(title: str) -> None:
    print(f"\n{title}")
    print("=" * (INDENT + LABEL_W + 1 + VALUE_W))


def _row(label: str, value: str) -> None:
    print(f"{'':{INDENT}}{label + ':':<{LABEL_W}} {value:>{VALUE_W}}")


def expand_filter_choices(text: str) -> List[str]:
    """Turn `"biquad,dft"` or `"all"` into a list of filter names."""
    names = [n.strip().lower() for n in text.split(",") if n.strip()]
    if not names:
        raise ValueError("No filters given")
    if "all" in names:
        return list(FILTER_HELP)
    for name in names:
        if name not in FILTER_HELP:
            raise ValueError(f"Unknown filter '{name}'. Available: all, {', '.join(FILTER_HELP)}")
    return names


def instantiate(name: str, args: FilterArgs) -> Filter:
    """Build the named filter from `args`; IIR sections are wrapped in a Cascade."""
    if name == "dft":
        return Dft.from_args(args)
    return Cascade.from_args(args, section_type(name))


def power_db_to_amplitude(db: float, gain: float) -> float:
    """Peak amplitude `db` below (or above) a normalized gain."""
    return 10.0 ** (db / 20.0) * gain


def normalized_gain(name: str, args: FilterArgs, nwaves: float = 512.0) -> float:
    """Peak absolute output for a full-scale tone at the center frequency."""
    filt = instantiate(name, args)
    sg = args.sine_gen()
    peak = 0.0
    for _ in range(args.nsamples(nwaves)):
        peak = max(peak, abs(float(filt.process(next(sg)))))
    return peak


def measure_sanity(name: str, args: FilterArgs, nwaves: float = 64.0) -> Tuple[float, float]:
    """Peak output on center, then at 7.77x center after draining.

    Returns:
        (center_peak, off_center_peak)
    """
    filt = instantiate(name, args)
    sg = args.sine_gen()
    nsamples = sg.nsamples(nwaves)

    center_peak = 0.0
    for _ in range(nsamples):
        center_peak = max(center_peak, abs(float(filt.process(next(sg)))))

    sg.set_frequency(args.center * 7.77)
    for _ in range(nsamples):
        filt.process(next(sg))

    off_center_peak = 0.0
    for _ in range(nsamples):
        off_center_peak = max(off_center_peak, abs(float(filt.process(next(sg)))))
    return center_peak, off_center_peak


def measure_gain(name: str, args: FilterArgs, volume: float, nwaves: float = 128.0) -> float:
    """Peak output for a tone of the given volume at the center frequency."""
    filt = instantiate(name, args)
    sg = args.sine_gen()
    peak = 0.0
    for _ in range(args.nsamples(nwaves)):
        peak = max(peak, float(filt.process(next(sg) * np.float32(volume))))
    return peak


def measure_rise(
    name: str, args: FilterArgs, goal: float, max_gain: float, max_waves: float = 4096.0
) -> Optional[float]:
    """Cycles until the output first exceeds `goal * max_gain`, or None."""
    filt = instantiate(name, args)
    sg = args.sine_gen()
    wave = args.fs / args.center
    peak = 0.0
    for s in range(int(max_waves * wave)):
        peak = max(peak, float(filt.process(next(sg))))
        if abs(peak) > goal * max_gain:
            return s / wave
    return None


def measure_decay(
    name: str, args: FilterArgs, goal: float, gain: float, max_samples: int = 1_000_000
) -> Optional[float]:
    """Cycles of silence until the output stays below `goal * gain` for a full wave.

    The filter is first driven to its peak, then the tone is tapered over half
    a wave before the input goes silent.
    """
    filt = instantiate(name, args)
    sg = args.sine_gen()

    peak = 0.0
    for _ in range(max_samples):
        peak = max(peak, abs(float(filt.process(next(sg)))))
        if peak * 1.01 > gain:
            break
    else:
        logger.warning("could not peak filter %s", name)

    half_wave = sg.nsamples(0.5)
    for n in range(half_wave):
        filt.process(next(sg) * np.float32(n / half_wave))

    threshold = gain * goal
    wave = sg.nsamples(1.0)
    since_exceed = 0
    for decay_samples in range(max_samples):
        out = abs(float(filt.process(0.0)))
        if out > threshold:
            since_exceed = 0
        else:
            since_exceed += 1
            if since_exceed > wave:
                return decay_samples / wave
    return None


def sweep_outward(
    filt: Filter,
    sg: SineSweeper,
    start: float,
    end: float,
    threshold_amplitude: float,
    steps: int = 4096,
) -> Optional[float]:
    """Sweep from `start` to `end` until `threshold_amplitude` is lost for 16 waves.

    Returns the last frequency where the threshold was still exceeded.
    """
    for _ in range(sg.nsamples(128.0)):
        filt.process(next(sg))

    log_step = np.log2(end / start) / steps
    last_peak_freq = start
    last_peak_samples = 0
    for s in range(steps + 1):
        freq = start * 2.0 ** (log_step * s)
        sg.set_frequency(freq)
        threshold_samples = sg.nsamples(16.0)
        for _ in range(sg.nsamples(1.0)):
            y = abs(float(filt.process(next(sg))))
            if y > threshold_amplitude:
                last_peak_samples = 0
                last_peak_freq = freq
            else:
                last_peak_samples += 1
                if last_peak_samples > threshold_samples:
                    return last_peak_freq
    return None


def sweep_inward(
    filt: Filter,
    sg: SineSweeper,
    start: float,
    end: float,
    threshold_amplitude: float,
    steps: int = 2048,
) -> Optional[float]:
    """Sweep from `start` to `end` until `threshold_amplitude` is first observed."""
    log_step = np.log2(end / start) / steps
    for s in range(steps + 1):
        freq = start * 2.0 ** (log_step * s)
        sg.set_frequency(freq)
        for _ in range(sg.nsamples(1.0)):
            if abs(float(filt.process(next(sg)))) > threshold_amplitude:
                return freq
    return None


def measure_bandwidth(
    name: str, args: FilterArgs, gain: float, threshold_db: float
) -> Optional[float]:
    """Two-sided bandwidth estimate in Hz from one outward and one inward sweep."""
    find_db = -abs(threshold_db)
    lose_db = find_db - 5.0
    filt = instantiate(name, args)
    sg = args.sine_gen()
    start = args.center
    # three octave outward sweep
    lost = sweep_outward(filt, sg, start, start * 8.0, power_db_to_amplitude(lose_db, gain))
    if lost is None:
        logger.warning("%s did not decay while sweeping outward", name)
        return None
    found = sweep_inward(filt, sg, lost, start, power_db_to_amplitude(find_db, gain))
    if found is None:
        logger.warning("%s did not reach threshold while sweeping inward", name)
        return None
    return abs((start - found) * 2.0)


def cmd_list(_: argparse.Namespace) -> None:
    print("Available filters:")
    for name, help_text in FILTER_HELP.items():
        print(f"  {name:<10} {help_text}")


def cmd_config(_: argparse.Namespace) -> None:
    defaults = WorkbenchConfig()
    _header("Workbench Configured Defaults")
    _row("Min frequency", f"{BANK_MIN_FREQ:3.2f} Hz")
    _row("Max frequency", f"{BANK_MAX_FREQ:3.2f} Hz")
    _row("Filter bank bins", f"{DISPLAY_WIDTH_4K:4d}")
    _row("Q", f"{defaults.q:3.2f}")
    _row("Center frequency", f"{defaults.center:g} Hz")
    _row("Sample frequency", f"{defaults.sample_rate:g} Hz")
    _row("Cascade Detune", f"{defaults.cascade_detune}")
    _row("Cascade Stages", f"{defaults.cascade_stages}")
    _row("Cascade Butterworth", f"{defaults.cascade_butterworth}")
    _row("DFT Window", defaults.dft_window)
    _row("Default bandwidth threshold", f"{defaults.bandwidth_db_threshold:4.2f}dB")


def cmd_sanity(ns: argparse.Namespace) -> None:
    args = WorkbenchConfig().args()
    for name in expand_filter_choices(ns.filters):
        center_peak, off_center_peak = measure_sanity(name, args)
        if center_peak <= off_center_peak:
            print(
                f"warning: {name} off-center gain exceeded center: "
                f"{off_center_peak:4.2f} > {center_peak:4.2f}",
                file=sys.stderr,
            )
        elif not 0.95 < center_peak < 1.05:
            print(f"warning: {name} gains appear un-normalized: {center_peak:4.2f}", file=sys.stderr)
        else:
            print(f"  {name}: sane")


def cmd_gain(ns: argparse.Namespace) -> None:
    names = expand_filter_choices(ns.filters)
    args = WorkbenchConfig().args()
    _header("Gain Test")
    for volume in (1.0, 0.5, 0.25, 0.05):
        print(f"test volume = {volume:2.1f}")
        for name in names:
            print(f"  gain for {name}: {measure_gain(name, args, volume):7.5f}")


def cmd_rise(ns: argparse.Namespace) -> None:
    names = expand_filter_choices(ns.filters)
    args = WorkbenchConfig().args()

    _header("Normalizing Max Gains")
    gains = [normalized_gain(name, args) for name in names]
    for name, gain in zip(names, gains):
        print(f"  {name}: {gain:3.2f}")

    _header("Rise Test")
    for goal in (0.1, 0.25, 0.5, 0.75, 0.9):
        print(f"time to {goal:2.1f}")
        for name, gain in zip(names, gains):
            waves = measure_rise(name, args, goal, gain)
            if waves is None:
                print(f"  warning: {name} did not reach the target gain!", file=sys.stderr)
            else:
                print(f"  {name}: {waves:7.2f} cycles")


def cmd_decay(ns: argparse.Namespace) -> None:
    names = expand_filter_choices(ns.filters)
    args = WorkbenchConfig().args()
    gains = [normalized_gain(name, args) for name in names]

    for goal in (0.75, 0.5, 0.25, 0.1, 0.05):
        print(f"time from 1.0 to {goal:2.1f}")
        for name, gain in zip(names, gains):
            waves = measure_decay(name, args, goal, gain)
            if waves is None:
                print(f"warning: {name} did not reach {goal:3.2f}", file=sys.stderr)
            else:
                print(f"  {name}: {waves:7.2f} cycles")


def cmd_bandwidth(ns: argparse.Namespace) -> None:
    names = expand_filter_choices(ns.filters)
    cfg = WorkbenchConfig()
    overrides = {}
    if ns.center is not None:
        overrides["center"] = ns.center
    args = cfg.args(**overrides)
    threshold = ns.threshold if ns.threshold is not None else cfg.bandwidth_db_threshold
    qs = [ns.q_factor] if ns.q_factor is not None else BANDWIDTH_QS

    _header("Bandwidth Test")
    gains = [normalized_gain(name, args) for name in names]
    for q in qs:
        print(f"Goal Q: {q:4.2f}")
        q_args = replace(args, q=q)
        for name, gain in zip(names, gains):
            bandwidth = measure_bandwidth(name, q_args, gain, threshold)
            if bandwidth is None:
                continue
            print(f"  {name}: {bandwidth:8.2f} Hz")
            print(f"    measured Q: {q_args.center / bandwidth:6.2f}")


def cmd_bin(ns: argparse.Namespace) -> None:
    b = bin_lookup(BANK_MIN_FREQ, BANK_MAX_FREQ, DISPLAY_WIDTH_4K, ns.center)
    _header(f"Bin centered at {b.center:6.1f}Hz")
    _row("min", f"{b.min:.2f} Hz")
    _row("max", f"{b.max:.2f} Hz")
    _row("bandwidth", f"{b.bandwidth:.2f} Hz")
    _row("quality", f"{b.q:.1f}")


def cmd_window(ns: argparse.Namespace) -> None:
    window_fn = WindowFunction.parse(ns.kind)
    window = window_fn.build(ns.length)
    _header(f"Window {window_fn} ({ns.length} samples)")
    _row("COLA repeat", f"{window.repeat}")
    _row("Sum of weights", f"{window.norm:.4f}")
    for i, w in enumerate(window.weights):
        print(f"  {i:5d} {w:.6f}")


def load_wav(path: Path) -> Tuple[int, np.ndarray]:
    """Read a WAV file as (sample_rate, float32 frames scaled to [-1, 1])."""
    import scipy.io.wavfile as wavfile

    sr, audio = wavfile.read(str(path))
    if audio.dtype == np.int16:
        audio = audio.astype(np.float32) / 32768
    elif audio.dtype == np.int32:
        audio = audio.astype(np.float32) / 2_147_483_648
    elif audio.dtype == np.uint8:
        audio = (audio.astype(np.float32) - 128) / 128
    else:
        audio = audio.astype(np.float32)
    if audio.ndim == 1:
        audio = audio.reshape(-1, 1)
    return sr, audio


def cmd_analyze(ns: argparse.Namespace) -> None:
    from spectrum_analyzer.pipeline import StreamingSpectrumPipeline

    sr, audio = load_wav(ns.wav)
    config = AnalyzerConfig(
        sample_rate=sr, update_rate=ns.update_rate, resolution=ns.resolution
    )
    frames: List = []
    pipeline = StreamingSpectrumPipeline(config=config, on_frame=frames.append)
    step = config.frame_length
    pipeline.run(audio[i : i + step] for i in range(0, len(audio), step))
    if not frames:
        raise ValueError(f"{ns.wav} is shorter than one update ({step} frames)")

    last = frames[-1]
    loudest = sorted(
        last, key=lambda c: max(c.left_perceptual, c.right_perceptual), reverse=True
    )[: ns.top]
    _header(f"{ns.wav}: {len(frames)} updates, loudest bins of the last one")
    for c in loudest:
        _row(f"{c.freq:9.2f} Hz", f"L {c.left_perceptual:6.1f} R {c.right_perceptual:6.1f} dB")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="spectrum-workbench",
        description="Measure filter behaviour and inspect analysis banks",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    def filters_command(name: str, help_text: str, func: Callable) -> argparse.ArgumentParser:
        p = sub.add_parser(name, help=help_text)
        p.add_argument("filters", help="Comma-separated filters to test, or `all`")
        p.set_defaults(func=func)
        return p

    sub.add_parser("list", help="List all filters").set_defaults(func=cmd_list)
    sub.add_parser("config", help="Show default filter and bank settings").set_defaults(
        func=cmd_config
    )
    filters_command("sanity", "Validate filter stability in forgiving situations", cmd_sanity)
    filters_command("gain", "Measure peak gain and gain linearity", cmd_gain)
    filters_command("rise", "Measure time to rise (fast attack)", cmd_rise)
    filters_command("decay", "Measure time to decay", cmd_decay)

    bw = filters_command("bandwidth", "Measure width of the pass band", cmd_bandwidth)
    bw.add_argument("--threshold", type=float, default=None, help="Threshold in dB (default -10)")
    bw.add_argument("--center", type=float, default=None, help="Center frequency in Hz")
    bw.add_argument("--q-factor", type=float, default=None, help="Measure only this Q")

    b = sub.add_parser("bin", help="Locate the visual bin for a frequency")
    b.add_argument("center", type=float)
    b.set_defaults(func=cmd_bin)

    w = sub.add_parser("window", help="Print window weights and COLA repeat")
    w.add_argument("kind", help="boxcar, bartlett, welch, hamming or dolph-chebyshev[:DB]")
    w.add_argument("--length", type=int, default=32, help="Window length (default: 32)")
    w.set_defaults(func=cmd_window)

    a = sub.add_parser("analyze", help="Run a WAV file through the CQT bank")
    a.add_argument("wav", type=Path)
    a.add_argument("--resolution", type=int, default=DEFAULT_RESOLUTION)
    a.add_argument("--update-rate", type=float, default=DEFAULT_UPDATE_RATE)
    a.add_argument("--top", type=int, default=10, help="Number of bins to print")
    a.set_defaults(func=cmd_analyze)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        args.func(args)
    except (ValueError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
