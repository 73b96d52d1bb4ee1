"""
Click CLI interface for cluster teardown.
"""

import json
import logging
import sys
from typing import Optional

import click
import yaml

from .config import ClusterMetadata, load_settings
from .events import get_status_from_events, read_events, tail_events
from .models import ClusterIdentity, ResourceKind
from .state import is_valid_infra_id, read_report_json
from .uninstaller import destroy


@click.group()
@click.option("--log-level", default="info",
              type=click.Choice(["debug", "info", "warning", "error"]), help="Log level")
def main(log_level: str):
    """
    clusterdown - tear down every oVirt resource of a provisioned cluster.
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


@main.command("destroy")
@click.option("--dir", "install_dir", type=click.Path(exists=True, file_okay=False),
              help="Install directory containing metadata.json")
@click.option("--infra-id", help="Infrastructure ID (instead of --dir)")
@click.option("--cluster-id", help="oVirt cluster ID scoping affinity groups")
@click.option("--remove-template/--keep-template", default=None, help="Remove the cluster's RHCOS template")
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False),
              help="YAML teardown settings")
@click.option("--ovirt-config", type=click.Path(dir_okay=False), help="oVirt config YAML with engine credentials")
@click.option("--json", "output_json", is_flag=True, help="Output the report as JSON")
def destroy_cmd(install_dir: Optional[str], infra_id: Optional[str], cluster_id: Optional[str],
                remove_template: Optional[bool], config_path: Optional[str],
                ovirt_config: Optional[str], output_json: bool):
    """
    Destroy all VMs, tags, templates and affinity groups of a cluster.
    """
    if install_dir:
        try:
            metadata = ClusterMetadata.from_file(install_dir)
        except (FileNotFoundError, ValueError) as e:
            click.echo(f"Invalid cluster metadata: {e}", err=True)
            sys.exit(1)
        identity = metadata.to_identity()
    elif infra_id:
        identity = ClusterIdentity(infra_id=infra_id)
    else:
        click.echo("Either --dir or --infra-id is required", err=True)
        sys.exit(1)

    # explicit flags win over metadata.json
    identity = ClusterIdentity(
        infra_id=identity.infra_id,
        cluster_id=cluster_id or identity.cluster_id,
        remove_template=identity.remove_template if remove_template is None else remove_template,
        cluster_name=identity.cluster_name,
    )

    if not is_valid_infra_id(identity.infra_id):
        click.echo(f"Invalid infra ID: {identity.infra_id}", err=True)
        sys.exit(1)

    try:
        settings = load_settings(config_path)
    except (OSError, ValueError, yaml.YAMLError) as e:
        click.echo(f"Invalid settings: {e}", err=True)
        sys.exit(1)

    report = destroy(identity, settings=settings, ovirt_config=ovirt_config)

    if output_json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        _print_report(report.to_dict())

    sys.exit(0 if report.completed else 1)


def _print_report(report: dict) -> None:
    click.echo(f"Cluster: {report['infra_id']}")
    click.echo(f"Status: {report['status'].upper()}")
    if report.get("error"):
        click.echo(f"Error: {report['error']}")

    for kind in ResourceKind:
        totals = report["totals"][kind.value]
        click.echo(f"  {kind.value}: {totals['removed']} removed, {totals['failed']} failed")

    for step in report["steps"]:
        if step.get("error"):
            click.echo(f"  ! {step['step']}: {step['error']}")
        for outcome in step["outcomes"]:
            if not outcome["success"]:
                click.echo(f"  ! {outcome['kind']} {outcome['name']}: {outcome['error']}")


@main.command("status")
@click.argument("infra_id")
@click.option("--json", "output_json", is_flag=True, help="Output machine-readable JSON")
def status_cmd(infra_id: str, output_json: bool):
    """
    Show the status of the last teardown run of a cluster.
    """
    if not is_valid_infra_id(infra_id):
        click.echo(f"Invalid infra ID: {infra_id}", err=True)
        sys.exit(1)

    status = get_status_from_events(infra_id)
    report = read_report_json(infra_id)

    if output_json:
        print(json.dumps({"infra_id": infra_id, "status": status, "report": report}, indent=2))
        return

    click.echo(f"Cluster: {infra_id}")
    click.echo(f"Status: {status.upper()}")
    if report:
        _print_report(report)

    events = read_events(infra_id)
    if events:
        click.echo("\nRecent events (last 5):")
        for event in events[-5:]:
            click.echo(f"  {event.get('ts', 'unknown')}: {event.get('type', 'unknown')}")


@main.command("events")
@click.argument("infra_id")
@click.option("--follow", is_flag=True, help="Keep streaming until the run finishes")
def events_cmd(infra_id: str, follow: bool):
    """
    Print teardown events as NDJSON.
    """
    if not is_valid_infra_id(infra_id):
        click.echo(f"Invalid infra ID: {infra_id}", err=True)
        sys.exit(1)

    try:
        for event in tail_events(infra_id, follow=follow):
            print(json.dumps(event), flush=True)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
