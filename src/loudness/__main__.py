"""
Entry point: `python -m loudness` or `loudness-threshold` script.
Wires all modules together.
"""
from __future__ import annotations


def run() -> None:
    from datetime import datetime
    from pathlib import Path

    from psychopy import core, logging
    from rich.console import Console
    from rich.table import Table
    import rich.box

    from loudness import config, plot, recorder, session, staircase, tone, trial

    rcon = Console(stderr=True)

    # ── INITIALISE SESSION ───────────────────────────────────────────────────
    session_info = session.show_dialog()
    session_time = datetime.now()
    try:
        stair_cfg = session.build_staircase_config()
        state = staircase.initial_state(
            session_info.initial_level_db, session_info.initial_step_db, stair_cfg
        )
    except staircase.ConfigurationError as exc:
        rcon.print(f"[bold red]Configuration error:[/bold red] {exc}")
        core.quit()
        return

    # ── LOGGING ──────────────────────────────────────────────────────────────
    run_dir = session.make_run_dir(Path("data"), session_info, session_time)
    logging.LogFile(str(run_dir / "experiment.log"), level=logging.EXP)
    logging.console.setLevel(logging.WARNING)  # rich handles terminal output

    # ── RICH CONSOLE ─────────────────────────────────────────────────────────
    rcon.print(
        f"[bold]Session:[/bold] subject=[cyan]{session_info.subject_id}[/cyan]  "
        f"start=[cyan]{session_info.initial_level_db:g} dB[/cyan]  "
        f"step=[cyan]{session_info.initial_step_db:g} dB[/cyan]"
    )
    rcon.print(
        f"[bold]Staircase:[/bold] {stair_cfg.down_criterion}-down/{stair_cfg.up_criterion}-up  "
        f"step=[cyan]{stair_cfg.min_step_size:g}..{stair_cfg.max_step_size:g} dB[/cyan]  "
        f"stop after [cyan]{session_info.max_trials}[/cyan] trials or "
        f"[cyan]{session_info.max_reversals}[/cyan] reversals"
    )
    logging.exp(
        f"Session: subject={session_info.subject_id}  "
        f"start={session_info.initial_level_db:g} dB  step={session_info.initial_step_db:g} dB"
    )

    # ── SETUP OUTPUT FILES ───────────────────────────────────────────────────
    trials_path = run_dir / f"staircase_{session_info.subject_id}.csv"
    writer = recorder.CsvWriter(trials_path)
    recorder.write_manifest(run_dir, session_info, session_time, stair_cfg)

    presenter = tone.TonePresenter()

    # printed once after the last trial
    table = Table(box=rich.box.SIMPLE_HEAD)
    table.add_column("#", justify="right")
    table.add_column("Level", justify="right")
    table.add_column("Amp", justify="right")
    table.add_column("Heard")
    table.add_column("Dir")
    table.add_column("Next", justify="right")
    table.add_column("Step", justify="right")
    table.add_column("Rev", justify="right")

    # ── TRIAL LOOP ───────────────────────────────────────────────────────────
    trial_n = 1
    while (reason := trial.stop_reason(
        trial_n, state, session_info.max_trials, session_info.max_reversals
    )) is None:
        rec, state, _ = trial.run_trial(
            trial_n, state, stair_cfg, presenter,
            respond=lambda: trial.collect_response(rcon),
        )

        heard_cell = "[green]yes[/green]" if rec.detected else "[red]no[/red]"
        rev_cell = f"[bold yellow]#{rec.reversal_count}[/bold yellow]" if rec.reversal else ""
        table.add_row(
            str(trial_n),
            f"{rec.presented_level:.1f}",
            f"{rec.amplitude:.3f}",
            heard_cell,
            rec.direction,
            f"{rec.level:.1f}",
            f"{rec.step_size:g}",
            rev_cell,
        )
        rcon.print(
            f"  heard={heard_cell}  direction={rec.direction}  "
            f"next=[cyan]{rec.level:.1f} dB[/cyan]  step={rec.step_size:g}  {rev_cell}"
        )

        logging.exp(
            f"Trial {trial_n:3d}  response={rec.response}  direction={rec.direction:<4}  "
            f"next={rec.level:.1f} dB  step={rec.step_size:g}  reversals={rec.reversal_count}"
        )
        writer.append(rec)
        trial_n += 1

    writer.close()
    rcon.print(table)
    if reason == "max_reversals":
        rcon.print(f"Reached maximum reversals ({session_info.max_reversals}). Stopping early.")
    logging.exp(f"Stopped: {reason}")

    # ── RESULTS ──────────────────────────────────────────────────────────────
    df = plot.load_results(trials_path)
    final_level = plot.final_level_threshold(df)
    rev_level = plot.reversal_threshold(df)
    rcon.print(
        f"\n[bold]Run complete:[/bold] {len(df)} trials, {state.reversal_count} reversals "
        f"({state.reversals_at_or_below_target} at or below {stair_cfg.target_step_size:g} dB)"
    )
    rcon.print(
        f"Estimated threshold ~ [bold cyan]{final_level:.1f} dB[/bold cyan] (last level)  "
        f"reversal mean ~ [cyan]{rev_level:.1f} dB[/cyan]"
    )
    logging.exp(f"Threshold: last level={final_level:.1f} dB  reversal mean={rev_level:.1f} dB")

    if not df.empty:
        fig, _ = plot.plot_staircase(df, reference_level=config.REFERENCE_LEVEL_DB)
        fig.savefig(run_dir / "staircase.png", dpi=150)
        rcon.print(f"Results saved to {run_dir}")

    logging.flush()
    core.quit()


if __name__ == "__main__":
    run()
