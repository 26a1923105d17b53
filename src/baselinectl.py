#!/usr/bin/env python3
"""
CLI tool for forge-baseline
Applies baseline governance to GitHub repositories and provisions the
setup-script redirect service on AWS
"""

import dataclasses
import json
import logging
from typing import Any, List, Optional

import click
import yaml
from tabulate import tabulate

from baseline.base import (
    EXIT_AUTH,
    EXIT_INPUT,
    AuthError,
    BucketRef,
    InputError,
    RepositoryRef,
)
from baseline.clients.aws import AWSClient
from baseline.clients.base import ResourceClient
from baseline.clients.github import GitHubClient
from baseline.documents import BranchProtection, RedirectRule
from baseline.reconcilers.base import ReconcilerPlugin
from baseline.registry import get_registry, register_builtin_plugins
from config import load_config
from reconciler import Reconciler, ReconcilerConfig
from reporting import render_report
from validation import (
    validate_branch,
    validate_bucket_name,
    validate_domain,
    validate_owner,
    validate_region,
    validate_repository_name,
    validate_subdomain,
)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def _load_document(filename: str) -> Any:
    """Read a YAML or JSON document from disk."""
    with open(filename, "r") as f:
        try:
            if filename.endswith(".yaml") or filename.endswith(".yml"):
                return yaml.safe_load(f)
            return json.load(f)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise InputError(f"Could not parse {filename}: {e}")


def _load_rules(filename: str) -> List[RedirectRule]:
    """Load redirect rules from a list, or a mapping with a 'rules' key."""
    data = _load_document(filename)
    if isinstance(data, dict):
        data = data.get("rules")
    if not isinstance(data, list) or not data:
        raise InputError(f"{filename} must contain a non-empty list of rules")
    return [RedirectRule.from_mapping(entry) for entry in data]


def _input_error(ctx: click.Context, error: InputError) -> None:
    click.echo(f"Error: {error}", err=True)
    ctx.exit(EXIT_INPUT)


def _run(
    ctx: click.Context,
    client: ResourceClient,
    plugin: ReconcilerPlugin,
    ref: Any,
    dry_run: bool,
    strict: bool,
) -> None:
    """Run one reconciliation, print the report and exit with its code."""
    logger.debug(f"Running {plugin.name} against {ref} with {client.name}")
    reconciler = Reconciler(client, ReconcilerConfig(dry_run=dry_run))
    report = reconciler.run(plugin, ref)
    render_report(report, ctx.obj["output"])
    ctx.exit(report.exit_code(strict=strict))


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--output", "-o", type=click.Choice(["text", "json"]), default="text")
@click.pass_context
def cli(ctx, verbose, output):
    """forge-baseline - idempotent baseline governance for repositories and DNS"""
    config = load_config()
    level = "DEBUG" if verbose else config.log_level
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING), format=LOG_FORMAT
    )

    if not get_registry().list_reconciler_plugins():
        register_builtin_plugins()

    ctx.obj = {"config": config, "output": output}


@cli.command()
@click.argument("repo_name", metavar="REPO")
@click.argument("branch", required=False)
@click.option("--owner", help="Repository owner (default: GITHUB_ORG)")
@click.option(
    "--workflow",
    "workflows",
    multiple=True,
    help="Workflow file that must exist (repeatable)",
)
@click.option(
    "--protection-file",
    type=click.Path(exists=True, dir_okay=False),
    help="Branch protection ruleset (YAML/JSON)",
)
@click.option("--template-repo", help="Repository to copy workflow files from")
@click.option("--dry-run", is_flag=True, help="Report divergence without applying")
@click.option("--strict", is_flag=True, help="Exit 5 on advisory warnings")
@click.pass_context
def repo(
    ctx,
    repo_name,
    branch,
    owner,
    workflows,
    protection_file,
    template_repo,
    dry_run,
    strict,
):
    """Apply repository standards to REPO on BRANCH"""
    config = ctx.obj["config"]
    standards = config.repo_standards

    try:
        ref = RepositoryRef(
            owner=validate_owner(owner or config.github.owner),
            name=validate_repository_name(repo_name),
            branch=validate_branch(branch or standards.default_branch),
        )
        protection: Optional[BranchProtection] = None
        if protection_file:
            protection = BranchProtection.from_mapping(_load_document(protection_file))
    except InputError as e:
        _input_error(ctx, e)
        return

    plugin = get_registry().create_reconciler_plugin(
        "repo-standards",
        protection=protection,
        workflow_paths=list(workflows) or standards.workflow_paths,
        template_repo=template_repo or standards.template_repo,
    )
    client = GitHubClient.from_config(config.github)
    _run(ctx, client, plugin, ref, dry_run, strict)


@cli.command()
@click.argument("subdomain", required=False)
@click.argument("region", required=False)
@click.option("--domain", help="Parent domain (default: DOMAIN)")
@click.option(
    "--rules-file",
    type=click.Path(exists=True, dir_okay=False),
    help="Redirect rules (YAML/JSON)",
)
@click.option("--scripts-repo", help="Repository holding the setup scripts")
@click.option("--scripts-ref", help="Git ref the redirects point at")
@click.option("--profile", help="AWS profile (default: AWS_PROFILE)")
@click.option("--dry-run", is_flag=True, help="Report divergence without applying")
@click.option("--strict", is_flag=True, help="Exit 5 on advisory warnings")
@click.pass_context
def redirects(
    ctx,
    subdomain,
    region,
    domain,
    rules_file,
    scripts_repo,
    scripts_ref,
    profile,
    dry_run,
    strict,
):
    """Provision the redirect bucket SUBDOMAIN.DOMAIN in REGION"""
    config = ctx.obj["config"]
    settings = config.redirects

    try:
        ref = BucketRef(
            subdomain=validate_subdomain(subdomain or settings.default_subdomain),
            domain=validate_domain(domain or settings.domain),
            region=validate_region(region or settings.default_region),
        )
        validate_bucket_name(ref.bucket_name)
        rules = _load_rules(rules_file) if rules_file else None
    except InputError as e:
        _input_error(ctx, e)
        return

    plugin = get_registry().create_reconciler_plugin(
        "redirects",
        rules=rules,
        scripts_owner=settings.scripts_owner,
        scripts_repo=scripts_repo or settings.scripts_repo,
        scripts_ref=scripts_ref or settings.scripts_ref,
    )

    aws_config = config.aws
    if profile:
        aws_config = dataclasses.replace(aws_config, profile=profile)
    try:
        client = AWSClient.from_config(aws_config, region=ref.region)
    except AuthError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(EXIT_AUTH)
        return

    _run(ctx, client, plugin, ref, dry_run, strict)


@cli.command(name="list")
@click.pass_context
def list_reconcilers(ctx):
    """List registered reconcilers and the properties they govern"""
    registry = get_registry()
    infos = [
        registry.get_reconciler_plugin_info(name)
        for name in registry.list_reconciler_plugins()
    ]

    if ctx.obj["output"] == "json":
        click.echo(json.dumps(infos, indent=2))
        return

    rows = [
        [info["name"], info["description"], "\n".join(info["properties"])]
        for info in infos
    ]
    headers = ["NAME", "DESCRIPTION", "PROPERTIES"]
    click.echo(tabulate(rows, headers=headers, tablefmt="grid"))


if __name__ == "__main__":
    cli()
