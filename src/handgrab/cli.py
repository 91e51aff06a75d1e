"""handgrab CLI.

Usage:
    handgrab replay      — Run a recording through the pipeline and controller
    handgrab classify    — Print per-frame gestures of a recording
    handgrab record      — Record hand frames from a webcam
    handgrab config      — Print or write the default configuration
    handgrab benchmark   — Time classification and debouncing
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Optional

import typer

app = typer.Typer(
    name="handgrab",
    help="🤚 Hand gesture input and object grabbing.",
    add_completion=False,
)


@app.callback()
def main_options(
    log_level: str = typer.Option("warning", help="Log level"),
):
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.WARNING),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )


def _load_config(path: Optional[str]):
    import yaml

    from handgrab.config import InteractionConfig

    if path is None:
        return InteractionConfig()
    try:
        return InteractionConfig.from_yaml(path)
    except (OSError, ValueError, yaml.YAMLError) as e:
        typer.echo(f"❌ Invalid config {path}: {e}", err=True)
        raise typer.Exit(1)


def _load_player(recording: str):
    from handgrab.recorder import HandFramePlayer

    path = Path(recording)
    if not path.exists():
        typer.echo(f"❌ Recording not found: {recording}", err=True)
        raise typer.Exit(1)
    return HandFramePlayer.load(path)


def _demo_object():
    from handgrab.geometry import Bounds, vec3
    from handgrab.scene import SceneNode

    return SceneNode(
        "cube",
        position=vec3(0, 0.3, -0.2),
        bounds=Bounds.from_center_size(vec3(), vec3(0.4, 0.4, 0.4)),
    )


@app.command()
def replay(
    recording: str = typer.Argument(..., help="Path to recording (.json or .npz)"),
    config: Optional[str] = typer.Option(None, help="Path to YAML config"),
    realtime: bool = typer.Option(False, help="Play at original timing"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print every tick"),
):
    """Replay a recording against a headless controller with a demo cube."""
    from handgrab.controller import InteractionController
    from handgrab.pipeline import NO_LABEL, HandInputPipeline
    from handgrab.profiler import RENDER_TICK

    cfg = _load_config(config)
    player = _load_player(recording)
    typer.echo(f"▶️  Replaying {Path(recording).name} ({player.frame_count} frames, {player.duration:.1f}s)")

    controller = InteractionController(config=cfg)
    controller.set_main_object(_demo_object())
    pipeline = HandInputPipeline(controller)

    last_label = None
    ticks = player.play_realtime() if realtime else player.play()
    for tick in ticks:
        snap = pipeline.process_frames(tick.hands, now=tick.timestamp * 1000.0)
        with pipeline.profiler.stage(RENDER_TICK):
            controller.tick()
        if verbose or (snap.label != last_label and snap.label != NO_LABEL):
            typer.echo(f"   {tick.timestamp:7.3f}s  {snap.label:14s}  {controller.state.value}")
        last_label = snap.label

    stats = pipeline.stats
    pos = controller.main_object.world_position()
    typer.echo(f"\n✅ Replay complete: {stats.total_ticks} ticks, {stats.drag_starts} drag starts")
    typer.echo(f"   Final state: {controller.state.value}")
    typer.echo(f"   Object position: ({pos[0]:.3f}, {pos[1]:.3f}, {pos[2]:.3f})")
    for name in pipeline.profiler.over_budget():
        typer.echo(f"⚠️  {name} tick p95 over its frame budget")


@app.command()
def classify(
    recording: str = typer.Argument(..., help="Path to recording (.json or .npz)"),
    config: Optional[str] = typer.Option(None, help="Path to YAML config"),
    fingers: bool = typer.Option(False, help="Also print finger extension states"),
):
    """Print the raw gesture of every hand in every frame."""
    from handgrab.classifier import GestureClassifier

    classifier = GestureClassifier.from_config(_load_config(config))
    player = _load_player(recording)

    counts: dict[str, int] = {}
    for i, tick in enumerate(player.play()):
        for hand in tick.hands:
            gesture = classifier.classify(hand)
            counts[gesture.value] = counts.get(gesture.value, 0) + 1
            line = f"   #{i:05d} {hand.handedness.value:5s} {gesture.value}"
            if fingers:
                states = "".join("1" if s else "0" for s in classifier.finger_states(hand))
                line += f"  [{states}]"
            typer.echo(line)

    typer.echo("\n📊 Totals:")
    for name, n in sorted(counts.items()):
        typer.echo(f"   {name:6s} {n}")


@app.command()
def record(
    output: str = typer.Option("recording.json", "--output", "-o", help="Output file path"),
    duration: float = typer.Option(0, help="Recording duration in seconds (0 = until Ctrl+C)"),
    compact: bool = typer.Option(False, help="Save in compact .npz format"),
    camera: int = typer.Option(0, help="Camera device index"),
):
    """Record hand frames from the camera via MediaPipe."""
    from handgrab.recorder import HandFrameRecorder
    from handgrab.tracking import MediaPipeHandSource

    try:
        source = MediaPipeHandSource(camera_index=camera)
    except ImportError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)

    recorder = HandFrameRecorder()
    typer.echo(f"🎥 Recording from camera {camera}... press Ctrl+C to stop")
    recorder.start()
    start = time.monotonic()

    try:
        with source:
            while True:
                hands = source.next_frames()
                recorder.add_frames(hands)
                if recorder.frame_count % 30 == 0:
                    typer.echo(
                        f"\r   Frames: {recorder.frame_count} | Hands: {len(hands)}", nl=False
                    )
                if duration > 0 and (time.monotonic() - start) >= duration:
                    break
    except KeyboardInterrupt:
        pass
    except RuntimeError as e:
        typer.echo(f"\n❌ {e}", err=True)
        raise typer.Exit(1)
    finally:
        recorder.stop()

    typer.echo(f"\n\n📼 Recorded {recorder.frame_count} frames ({recorder.duration:.1f}s)")
    if compact:
        path = recorder.save_compact(output)
    else:
        recorder.save(output)
        path = output
    typer.echo(f"💾 Saved to: {path}")


@app.command("config")
def config_cmd(
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Write to this YAML file"),
    source: Optional[str] = typer.Option(None, "--from", help="Validate and print an existing config"),
):
    """Print the effective configuration, or write it to a file."""
    cfg = _load_config(source)
    if output:
        cfg.to_yaml(output)
        typer.echo(f"💾 Saved to {output}")
    else:
        typer.echo(cfg.dump(), nl=False)


@app.command()
def benchmark(
    iterations: int = typer.Option(1000, help="Number of iterations"),
    hands: int = typer.Option(2, help="Simulated hands per frame"),
):
    """Time classification and debouncing on synthetic frames."""
    import numpy as np

    from handgrab.classifier import Gesture, GestureClassifier
    from handgrab.debounce import EdgeDebouncer
    from handgrab.landmarks import HandFrame, Handedness
    from handgrab.profiler import TRACKING_TICK, TickProfiler

    typer.echo(f"⚡ Running benchmark: {iterations} iterations, {hands} hand(s)")

    classifier = GestureClassifier()
    debouncers = [EdgeDebouncer() for _ in range(hands)]
    profiler = TickProfiler(window_size=iterations)

    rng = np.random.default_rng(42)
    sides = [Handedness.RIGHT, Handedness.LEFT]
    frames = [
        HandFrame.from_array(sides[i % 2], rng.random((21, 3)), 0.0) for i in range(hands)
    ]

    for i in range(iterations):
        with profiler.stage(TRACKING_TICK):
            with profiler.stage("classify"):
                gestures = [classifier.classify(f) for f in frames]
            with profiler.stage("debounce"):
                for d, g in zip(debouncers, gestures):
                    d.update(g is Gesture.PINCH, i * 33.0)

    typer.echo("\n📈 Stage breakdown:")
    for name, stats in profiler.summary().items():
        line = f"   {name:10s} mean={stats['mean_ms']:.3f}ms  p95={stats['p95_ms']:.3f}ms"
        if "budget_ms" in stats:
            line += f"  budget={stats['budget_ms']:.1f}ms  overruns={stats['overruns']}"
        typer.echo(line)


def main():
    app()


if __name__ == "__main__":
    main()
