import click
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel

from deploygate.application.config_loader import ConfigLoadError, load_config
from deploygate.application.config_models import GateConfig
from deploygate.application.notification import ConnectionManager, NotificationDispatcher
from deploygate.domain.events import GateEventType
from deploygate.interface.cli.output_models import (
    ConfigOutput,
    NotifyOutput,
    RunSummary,
    RunsOutput,
    ServeOutput,
)

logger = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]
DEMO_PIPELINE = "demo/pipeline"


def _json_emit(model: BaseModel) -> None:
    # Single-line JSON, omit None fields.
    click.echo(model.model_dump_json(exclude_none=True), nl=True)


def _get_json_mode(ctx: click.Context) -> bool:
    obj = ctx.obj or {}
    return bool(obj.get("json", False))


def _load(ctx: click.Context) -> GateConfig:
    obj = ctx.obj or {}
    return load_config(
        project_root=Path.cwd(),
        user_home=Path.home(),
        overrides=obj.get("overrides"),
    )


def _build_dispatcher(config: GateConfig) -> NotificationDispatcher:
    # Patched by tests to inject a mock transport.
    return NotificationDispatcher(ConnectionManager(config.http))


def _fail(ctx: click.Context, output: BaseModel, e: Exception) -> None:
    if _get_json_mode(ctx):
        _json_emit(output)
        raise click.exceptions.Exit(1)
    raise click.ClickException(str(e)) from e


@click.group(help="Deploy approval gates for pipeline runs.")
@click.option("--json", "json_output", is_flag=True, help="Emit machine-readable JSON on stdout.")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
)
@click.option("--deploy-callback", type=str, default=None, help="Override the deploy callback URL.")
@click.option("--notice-callback", type=str, default=None, help="Override the notice callback URL.")
@click.option(
    "--runs-root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Override the run record directory.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    log_level: str,
    deploy_callback: str | None,
    notice_callback: str | None,
    runs_root: Path | None,
) -> None:
    ctx.ensure_object(dict)
    ctx.obj["json"] = bool(json_output)
    ctx.obj["overrides"] = {
        "deploy_callback": deploy_callback,
        "notice_callback": notice_callback,
        "runs_root": str(runs_root) if runs_root is not None else None,
    }
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command("config")
@click.pass_context
def config_cmd(ctx: click.Context) -> None:
    """Print the resolved configuration."""
    try:
        cfg = _load(ctx)
        data = cfg.model_dump(mode="json")

        if _get_json_mode(ctx):
            _json_emit(ConfigOutput(exit_code=0, config=data))
            raise click.exceptions.Exit(0)

        click.echo(yaml.safe_dump(data, sort_keys=False).rstrip())

    except click.exceptions.Exit:
        raise
    except ConfigLoadError as e:
        _fail(ctx, ConfigOutput(exit_code=1, error=str(e)), e)


@cli.command("notify")
@click.option(
    "--type",
    "event_type",
    type=click.Choice([t.value for t in GateEventType]),
    default=GateEventType.READY.value,
    show_default=True,
)
@click.option("--url", type=str, default=None, help="Notice URL (default: configured notice callback)")
@click.option("--run-id", type=int, default=0)
@click.option("--gate-id", type=str, default="Test")
@click.option("--node-id", type=str, default="")
@click.option("--pipeline", type=str, default="test", help="Pipeline full name")
@click.option("--user-id", type=str, default=None)
@click.option("--user-name", type=str, default=None)
@click.pass_context
def notify_cmd(
    ctx: click.Context,
    event_type: str,
    url: str | None,
    run_id: int,
    gate_id: str,
    node_id: str,
    pipeline: str,
    user_id: str | None,
    user_name: str | None,
) -> None:
    """Send a test notice to the notice callback."""
    try:
        cfg = _load(ctx)
        target = url or cfg.notice_callback
        if not target:
            raise click.ClickException(
                "No notice URL. Pass --url or set notice_callback in .deploygate/config.yml."
            )

        fields: dict[str, Any] = {
            "runId": run_id,
            "stepId": gate_id,
            "inputId": gate_id,
            "nodeId": node_id,
            "pipelineName": pipeline.rsplit("/", 1)[-1],
            "pipelineFullName": pipeline,
            "submitter": "",
        }
        dispatcher = _build_dispatcher(cfg)
        delivered = dispatcher.notify(target, GateEventType(event_type), fields, user_id, user_name)
        exit_code = 0 if delivered else 1

        if _get_json_mode(ctx):
            _json_emit(
                NotifyOutput(exit_code=exit_code, url=target, type=event_type, delivered=delivered)
            )
            raise click.exceptions.Exit(exit_code)

        click.echo(f"{event_type} -> {target}: {'delivered' if delivered else 'FAILED'}")
        if not delivered:
            raise click.exceptions.Exit(1)

    except click.exceptions.Exit:
        raise
    except click.ClickException as e:
        _fail(ctx, NotifyOutput(exit_code=1, error=e.message), e)
    except ConfigLoadError as e:
        _fail(ctx, NotifyOutput(exit_code=1, error=str(e)), e)


@cli.command("runs")
@click.option("--pending", is_flag=True, help="Only runs with pending deploy gates")
@click.pass_context
def runs_cmd(ctx: click.Context, pending: bool) -> None:
    """List run records and their pending gate ids."""
    try:
        from deploygate.domain.persistence import RunStore

        cfg = _load(ctx)
        store = RunStore(runs_root=cfg.runs_root)

        runs: list[RunSummary] = []
        for run_id in store.list_runs():
            try:
                record = store.load(run_id)
            except ValueError as e:
                logger.warning(f"Skipping run '{run_id}': {e}")
                continue
            if pending and not record.gate_ids:
                continue
            runs.append(RunSummary(
                run_id=record.run_id,
                gate_ids=list(record.gate_ids),
                markers=[m.display_name for m in record.markers],
                created_at=record.created_at.isoformat(),
                updated_at=record.updated_at.isoformat(),
            ))

        if _get_json_mode(ctx):
            _json_emit(RunsOutput(exit_code=0, runs=runs, total=len(runs)))
            raise click.exceptions.Exit(0)

        if not runs:
            click.echo("No runs found.")
        else:
            click.echo(f"{'RUN_ID':<32}{'PENDING_GATES':<40}{'UPDATED'}")
            for r in runs:
                gates = ",".join(r.gate_ids) or "-"
                click.echo(f"{r.run_id:<32}{gates:<40}{r.updated_at}")

    except click.exceptions.Exit:
        raise
    except Exception as e:
        _fail(ctx, RunsOutput(exit_code=1, error=str(e)), e)


@cli.command("serve")
@click.option("--host", type=str, default="127.0.0.1", show_default=True)
@click.option("--port", type=int, default=8080, show_default=True)
@click.option("--demo", is_flag=True, help="Open a sample gate in a demo run on startup.")
@click.pass_context
def serve_cmd(ctx: click.Context, host: str, port: int, demo: bool) -> None:
    """Serve the gate REST API backed by the in-memory engine."""
    try:
        cfg = _load(ctx)
    except ConfigLoadError as e:
        _fail(ctx, ServeOutput(exit_code=1, error=str(e)), e)
        return

    import uvicorn

    from deploygate.application.gate_operations import GateOperations
    from deploygate.application.gate_services import create_gate_services
    from deploygate.domain.events import ConsoleEventObserver
    from deploygate.domain.models import GateStep
    from deploygate.domain.persistence import RunStore
    from deploygate.engine import MemoryFlowEngine
    from deploygate.interface.api import create_app

    services = create_gate_services(cfg)
    services.emitter.subscribe(ConsoleEventObserver())
    engine = MemoryFlowEngine(services, RunStore(runs_root=cfg.runs_root), cfg.load_executions_timeout)

    if demo:
        run = engine.start_run(DEMO_PIPELINE)
        gate = engine.open_gate(run.run_id, GateStep(message="Deploy the demo pipeline?"))
        click.echo(f"Demo gate: {gate.url}", err=True)

    if _get_json_mode(ctx):
        _json_emit(ServeOutput(exit_code=0, host=host, port=port))

    app = create_app(GateOperations(engine))
    try:
        uvicorn.run(app, host=host, port=port)
    finally:
        services.shutdown(wait=False)
