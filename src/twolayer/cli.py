"""
Command-line interface for twolayer.

Usage:
    twolayer run
    twolayer run --seed 42 --outputs csv --outputs png
    twolayer run --no-noise --method DormandPrince45 --set B0=1.5
    twolayer params
    twolayer ecs --set Fmax=7.4
"""

import sys
from pathlib import Path
from typing import Dict, Tuple
import click

from twolayer import __version__, ClimateModel
from twolayer.core.parameters import PARAMETER_DESCRIPTIONS, PARAMETER_UNITS
from twolayer.core.solver import IntegrationError, list_schemes
from twolayer.utils.logging import (
    setup_logging,
    start_step,
    end_step,
    log_error,
    get_timing_logger,
)
from twolayer.utils.config import load_config, initial_state_from_config


def _parse_overrides(values: Tuple[str, ...]) -> Dict[str, float]:
    """Parse NAME=VALUE pairs for the physical parameters."""
    overrides = {}
    for item in values:
        if "=" not in item:
            raise click.BadParameter(f"Expected NAME=VALUE, got '{item}'", param_hint="--set")
        name, value = item.split("=", 1)
        name = name.strip()
        if name not in PARAMETER_UNITS:
            raise click.BadParameter(
                f"Unknown parameter '{name}'. Available: {list(PARAMETER_UNITS)}",
                param_hint="--set",
            )
        try:
            overrides[name] = float(value)
        except ValueError:
            raise click.BadParameter(f"Not a number: '{value}'", param_hint="--set")
    return overrides


def _apply_overrides(config: Dict, overrides: Dict[str, float]) -> None:
    config.setdefault("parameters", {}).update(overrides)


set_option = click.option(
    "--set", "overrides",
    multiple=True,
    metavar="NAME=VALUE",
    help="Override a model parameter (S0, C_a, C_o, A, B0, Fmax, k). Repeatable.",
)


@click.group()
@click.version_option(version=__version__, prog_name="twolayer")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--debug", is_flag=True, help="Enable debug output")
@click.option("--config", type=click.Path(), help="Config file path")
@click.pass_context
def main(ctx, verbose, debug, config):
    """
    twolayer - Two-Layer Energy Balance Climate Model

    Integrates a fast atmosphere / mixed layer coupled to a slow deep
    ocean under ramp, volcanic, solar and stochastic forcing, and reports
    the Equilibrium Climate Sensitivity.
    """
    ctx.ensure_object(dict)
    ctx.obj["config"] = load_config(config)
    ctx.obj["verbose"] = verbose
    ctx.obj["debug"] = debug


@main.command("run")
@click.option(
    "--method", "-m",
    type=click.Choice(list_schemes(), case_sensitive=False),
    default=None,
    help="Embedded Runge-Kutta scheme (default: from config, Tsit5)",
)
@click.option("--t-end", type=float, default=None, help="End time in years (default: 1000)")
@click.option("--seed", type=int, default=None, help="Random seed for reproducibility")
@click.option("--no-noise", is_flag=True, help="Disable stochastic forcing")
@click.option(
    "--n-points",
    type=int,
    default=None,
    help="Resample output on this many uniform times (default: solver nodes)",
)
@click.option(
    "--output-dir", "-o",
    type=click.Path(),
    default=None,
    help="Output directory (default: ./outputs)",
)
@click.option(
    "--outputs",
    type=click.Choice(["csv", "netcdf", "png"]),
    multiple=True,
    help="Output formats (default: from config)",
)
@click.option("--log-dir", type=click.Path(), default=None, help="Log directory")
@click.option(
    "--experiment-name", "-e",
    type=str,
    default="twolayer",
    help="Experiment name for output and log files",
)
@click.option("--progress/--no-progress", default=False, help="Show a progress bar")
@set_option
@click.pass_context
def run(ctx, method, t_end, seed, no_noise, n_points, output_dir, outputs, log_dir,
        experiment_name, progress, overrides):
    """Run the two-layer climate simulation."""
    import traceback

    config = ctx.obj["config"]
    debug = ctx.obj.get("debug", False)
    verbose = ctx.obj.get("verbose", False)

    _apply_overrides(config, _parse_overrides(overrides))
    sim = config["simulation"]
    if no_noise:
        sim["add_noise"] = False

    output_dir = Path(output_dir or config["outputs"]["base_dir"])
    outputs = list(outputs) if outputs else list(config["outputs"]["formats"])
    log_dir = log_dir or config["logging"]["log_dir"]

    level = "DEBUG" if debug else ("INFO" if verbose else config["logging"]["level"])
    logger = setup_logging(
        level=level,
        log_dir=log_dir,
        experiment_name=experiment_name,
        format_style=config["logging"]["format_style"],
        always_save=True,
        include_timestamp=False,
    )

    try:
        # =====================================================================
        # STEP: Define Model
        # =====================================================================
        start_step("Define model")
        model = ClimateModel.from_config(config)
        click.echo("Two-layer climate model with all feedbacks and forcings defined.")
        end_step(success=True)

        # =====================================================================
        # STEP: Solve
        # =====================================================================
        start_step("Solve ODE problem")
        try:
            results = model.run(
                initial_state=initial_state_from_config(config),
                t_span=(float(sim["t_start"]), float(t_end if t_end is not None else sim["t_end"])),
                seed=seed if seed is not None else sim.get("seed"),
                method=method or sim["method"],
                rtol=float(sim["rtol"]),
                atol=float(sim["atol"]),
                max_step=sim.get("max_step"),
                max_steps=int(sim["max_steps"]),
                n_points=n_points if n_points is not None else sim.get("n_points"),
                show_progress=progress,
            )
        except IntegrationError as e:
            end_step(success=False)
            log_error(e, "ODE integration")
            click.echo(f"\n  ✗ Integration failed ({e.status.value}): {e}", err=True)
            sys.exit(1)
        click.echo("ODE problem solved.")
        end_step(success=True)

        # =====================================================================
        # STEP: Outputs
        # =====================================================================
        if outputs:
            start_step("Generate outputs")
            output_dir.mkdir(parents=True, exist_ok=True)

            if "csv" in outputs:
                csv_path = output_dir / f"{experiment_name}_data.csv"
                results.to_csv(csv_path)
                click.echo(f"    ✓ CSV: {csv_path}")

            if "netcdf" in outputs:
                nc_path = output_dir / f"{experiment_name}_data.nc"
                results.to_netcdf(nc_path)
                click.echo(f"    ✓ NetCDF: {nc_path}")

            if "png" in outputs:
                png_path = output_dir / f"{experiment_name}_timeseries.png"
                results.to_png(png_path, dpi=config["visualization"]["timeseries_dpi"])
                click.echo(f"    ✓ PNG: {png_path}")

            end_step(success=True)

        summary = results.summary()
        click.echo(f"\n  Results Summary:")
        click.echo(f"    Final T_atmosphere: {summary['final_T_atmosphere']:.6f} K")
        click.echo(f"    Final T_ocean:      {summary['final_T_ocean']:.6f} K")
        click.echo(f"    Max warming:        {summary['max_warming']:.6g} K")
        click.echo(f"    Solver steps:       {summary['n_accepted']} accepted, "
                   f"{summary['n_rejected']} rejected")
        if not summary["is_finite"]:
            click.echo("    WARNING: non-finite temperatures, check the parameters", err=True)

        click.echo(f"Equilibrium Climate Sensitivity (ECS): {results.ecs} K per CO₂ doubling")

        timing_logger = get_timing_logger()
        if timing_logger:
            click.echo(timing_logger.get_summary())

        logger.info("Run completed")

    except Exception as e:
        log_error(e, "Main execution")
        click.echo(f"\n  FATAL ERROR: {e}", err=True)
        click.echo(f"Check log file in: {log_dir}", err=True)
        click.echo(traceback.format_exc(), err=True)
        sys.exit(1)


@main.command("params")
@set_option
@click.pass_context
def params(ctx, overrides):
    """List the model parameters."""
    config = ctx.obj["config"]
    _apply_overrides(config, _parse_overrides(overrides))
    model = ClimateModel.from_config(config)

    click.echo("\nModel Parameters:")
    click.echo("─" * 70)
    for name, value in model.params.to_dict().items():
        click.echo(
            f"  {name:<5} = {value:<12g} {PARAMETER_UNITS[name]:<8}  {PARAMETER_DESCRIPTIONS[name]}"
        )
    click.echo("─" * 70)
    click.echo(f"  Noise amplitude   = {model.forcing.noise_amplitude} W/m²")
    click.echo(f"  Forcing ramp      = {model.forcing.ramp_years:g} years")
    for event in model.forcing.volcanic_events:
        click.echo(f"  Volcanic eruption = {event.forcing:+g} W/m² on [{event.start:g}, {event.end:g}]")
    click.echo()


@main.command("ecs")
@set_option
@click.pass_context
def ecs(ctx, overrides):
    """Print the Equilibrium Climate Sensitivity."""
    config = ctx.obj["config"]
    _apply_overrides(config, _parse_overrides(overrides))
    model = ClimateModel.from_config(config)
    click.echo(f"Equilibrium Climate Sensitivity (ECS): {model.ecs} K per CO₂ doubling")


if __name__ == "__main__":
    main()
