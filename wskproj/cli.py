"""Main CLI entrypoint for wskproj."""

import json
import logging
import sys
from typing import Any, Dict, Optional

import click

from .client import WhiskClient
from .collect import Collector
from .config import RetryPolicy, WhiskConfig
from .errors import ManifestFormatError, WskprojError
from .events import EventLog
from .export import export_project
from .inputs import parse_cli_params, update_package_inputs
from .manifest import load_manifest
from .undeploy import UndeployOptions, describe_assets, undeploy_project


@click.group()
@click.option('--apihost', envvar='WHISK_APIHOST', help='OpenWhisk API host')
@click.option('--auth', envvar='WHISK_AUTH', help='Credentials as <uuid>:<key>')
@click.option('--namespace', envvar='WHISK_NAMESPACE', help='Target namespace')
@click.option('--insecure', is_flag=True, help='Skip TLS certificate verification')
@click.option('-v', '--verbose', is_flag=True, help='Verbose logging')
@click.pass_context
def main(ctx, apihost, auth, namespace, insecure, verbose):
    """wskproj - reconcile and undeploy managed OpenWhisk projects."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    ctx.ensure_object(dict)
    ctx.obj['whisk'] = {'apihost': apihost, 'auth': auth, 'namespace': namespace, 'insecure': insecure or None}


def _json_output(data: Dict[str, Any]) -> None:
    """Output data as JSON."""
    print(json.dumps(data, indent=None))


def _fail(message: str, output_json: bool, code: int = 1) -> None:
    if output_json:
        _json_output({'error': message})
    else:
        click.echo(f"❌ {message}", err=True)
    sys.exit(code)


def _collector(ctx, namespace: Optional[str] = None) -> Collector:
    settings = dict(ctx.obj['whisk'])
    if namespace and not settings.get('namespace'):
        settings['namespace'] = namespace
    config = WhiskConfig.from_env(**settings)
    return Collector(WhiskClient(config), RetryPolicy.from_env())


@main.command()
@click.option('--project', 'project_name', help='Project name (defaults to the manifest project)')
@click.option('-m', '--manifest', 'manifest_path', type=click.Path(), help='Manifest supplying the project name')
@click.option('--preview', is_flag=True, help='Show what would be deleted without deleting')
@click.option('--json', 'output_json', is_flag=True, help='Output machine-readable JSON')
@click.pass_context
def undeploy(ctx, project_name, manifest_path, preview, output_json):
    """Undeploy a managed project and the dependencies nobody else uses."""
    namespace = None
    try:
        if manifest_path:
            manifest = load_manifest(manifest_path)
            project_name = project_name or manifest.project_name
            namespace = manifest.namespace or None
        if not project_name:
            _fail("A project name is required: use --project or a manifest with project.name", output_json, 2)

        collector = _collector(ctx, namespace)
        result = undeploy_project(
            collector.client,
            UndeployOptions(project_name=project_name, preview=preview),
            event_log=EventLog(project_name),
            collector=collector,
        )
    except WskprojError as e:
        _fail(str(e), output_json)
        return

    if output_json:
        _json_output(result.to_dict())
    else:
        if result.project is not None and (result.previewed or not result.ok):
            for line in describe_assets(result.project):
                click.echo(line)
            for dep in result.dependencies:
                for line in describe_assets(dep, title=f"Dependency project: {dep.project_name}"):
                    click.echo(line)
        if result.previewed:
            click.echo("👀 Preview only, nothing was deleted")
        elif result.ok:
            click.echo(f"✅ Project {project_name} undeployed ({len(result.deleted)} entities deleted)")
        else:
            click.echo(f"❌ Undeploy failed: {result.error}", err=True)
            if result.deleted:
                click.echo(f"Deleted before the failure: {', '.join(result.deleted)}", err=True)

    sys.exit(0 if result.ok else 1)


@main.command()
@click.option('-m', '--manifest', 'manifest_path', required=True, type=click.Path(), help='Manifest file')
@click.option('-P', '--param-file', type=click.Path(exists=True), help='JSON file of input values')
@click.option('-p', '--param', 'params', nargs=2, multiple=True, metavar='KEY VALUE', help='Input value (repeatable)')
@click.option('--report', is_flag=True, help='Warn about missing required inputs instead of failing')
@click.option('--json', 'output_json', is_flag=True, help='Output machine-readable JSON')
def inputs(manifest_path, param_file, params, report, output_json):
    """Merge CLI parameters into manifest inputs and check required values."""
    try:
        manifest = load_manifest(manifest_path)
        overrides = parse_cli_params(params, param_file)
        result = update_package_inputs(
            manifest.packages,
            overrides,
            project_inputs=manifest.inputs,
            report=report,
            manifest_path=manifest_path,
        )
    except ManifestFormatError as e:
        _fail(str(e), output_json)
        return
    except (ValueError, OSError) as e:
        _fail(f"Invalid parameters: {e}", output_json, 2)
        return

    if output_json:
        _json_output({
            'parameters': result.parameters,
            'missing': result.missing,
            'warnings': result.warnings,
        })
        return

    for warning in result.warnings:
        click.echo(f"⚠️  {warning}", err=True)
    for pkg_name, key_values in result.parameters.items():
        click.echo(f"package: {pkg_name}")
        for kv in key_values:
            click.echo(f"  {kv['key']} = {json.dumps(kv['value'])}")


@main.command()
@click.option('--project', 'project_name', required=True, help='Project name')
@click.option('-o', '--output', 'output_path', required=True, type=click.Path(), help='Manifest file to write')
@click.option('--json', 'output_json', is_flag=True, help='Output machine-readable JSON')
@click.pass_context
def export(ctx, project_name, output_path, output_json):
    """Export a managed project and its dependencies to manifests."""
    try:
        summary = export_project(_collector(ctx), project_name, output_path, event_log=EventLog(project_name))
    except WskprojError as e:
        _fail(f"Export failed: {e}", output_json)
        return

    if output_json:
        _json_output(summary)
    else:
        for path in summary['manifests']:
            click.echo(f"📄 {path}")


@main.command()
@click.option('--project', 'project_name', required=True, help='Project name')
@click.option('--json', 'output_json', is_flag=True, help='Output machine-readable JSON')
def history(project_name, output_json):
    """Show recorded undeploy and export events for a project."""
    events = EventLog(project_name).read()
    if output_json:
        _json_output({'project': project_name, 'events': events})
        return

    if not events:
        click.echo(f"No events recorded for {project_name}")
        return
    for event in events:
        data = event.get('data', {})
        detail = data.get('name') or data.get('reason') or ''
        click.echo(f"[{event.get('ts', '')}] {event.get('type', 'UNKNOWN')} {detail}".rstrip())


if __name__ == '__main__':
    main()
