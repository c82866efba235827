# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Command Line Interface for stackup.
"""
import os
import re

import click
from pydantic import ValidationError

from ..MANAGERS.service_orchestrator import ServiceOrchestrator
from ..MODELS.project_config import ProjectConfig
from ..MODELS.up_options import UpOptions
from ..PARSERS.compose_parser import ComposeParser
from ..UTILS.logging_setup import setup_logging
from ..errors import StackupError

DEFAULT_COMPOSE_FILES = ('compose.yaml', 'compose.yml', 'docker-compose.yml', 'docker-compose.yaml')


def find_compose_file(project_dir: str):
    """
    Returns the first default compose file present in the project directory, if any.
    """
    for name in DEFAULT_COMPOSE_FILES:
        path = os.path.join(project_dir, name)
        if os.path.exists(path):
            return path
    return None


def normalize_project_name(name: str) -> str:
    """Lowercases the name and drops characters not allowed in project names."""
    return re.sub(r'[^a-z0-9_-]', '', name.lower())


@click.group()
@click.option('--file', '-f', default=None, help='Compose file path')
@click.option('--project-name', '-p', default=None, help='Project name')
@click.option('--project-directory', default=None, help='Alternate working directory')
@click.option('--env-file', default=None, help='Env file passed to every container')
@click.option('--engine', default=None, help='Container engine binary (default: nerdctl)')
@click.option('--log-level', default='INFO',
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False))
@click.pass_context
def cli(ctx, file, project_name, project_directory, env_file, engine, log_level):
    """
    stackup - bring up compose projects on a container engine.
    """
    setup_logging(log_level)
    ctx.ensure_object(dict)

    if file:
        project_dir = project_directory or os.path.dirname(os.path.abspath(file))
    else:
        project_dir = project_directory or os.getcwd()
        file = find_compose_file(project_dir)
    project_dir = os.path.abspath(project_dir)
    ctx.obj['file'] = file

    if env_file:
        env_file = os.path.abspath(env_file)
    project = ProjectConfig.from_env(
        default_name=os.path.basename(project_dir),
        name=project_name,
        env_file=env_file,
        engine=engine,
    )
    project = project.model_copy(update={'name': normalize_project_name(project.name)})
    ctx.obj['project'] = project
    ctx.obj['project_dir'] = project_dir


@cli.command()
@click.option('--detach', '-d', is_flag=True, help='Run containers in the background')
@click.option('--no-build', is_flag=True, help="Don't build an image, even if it's missing")
@click.option('--build', 'force_build', is_flag=True, help='Build images before starting containers')
@click.option('--abort-on-container-exit', is_flag=True,
              help='Stops all containers if any container was stopped')
@click.option('--quiet-pull', is_flag=True, help='Pull without printing progress information')
@click.option('--pull', default=None, help='Pull image before running ("always"|"missing"|"never"|"build")')
@click.option('--no-color', is_flag=True, help='Produce monochrome output')
@click.option('--no-log-prefix', is_flag=True, help="Don't print prefix in logs")
@click.option('--force-recreate', is_flag=True,
              help="Recreate containers even if their configuration hasn't changed")
@click.option('--no-recreate', is_flag=True, help="Don't recreate containers if they exist")
@click.argument('services', nargs=-1)
@click.pass_context
def up(ctx, detach, no_build, force_build, abort_on_container_exit, quiet_pull, pull,
       no_color, no_log_prefix, force_recreate, no_recreate, services):
    """Create and start containers."""
    file = ctx.obj['file']
    if not file or not os.path.exists(file):
        raise click.ClickException(f"{file or 'compose file'} not found.")

    try:
        options = UpOptions(
            no_build=no_build,
            force_build=force_build,
            detach=detach,
            abort_on_container_exit=abort_on_container_exit,
            quiet_pull=quiet_pull,
            pull=pull,
            no_color=no_color,
            no_log_prefix=no_log_prefix,
            force_recreate=force_recreate,
            no_recreate=no_recreate,
            services=list(services),
        )
    except ValidationError as e:
        raise click.UsageError("; ".join(err['msg'] for err in e.errors())) from e

    project = ctx.obj['project']
    try:
        parser = ComposeParser(project.name, ctx.obj['project_dir'], env_file=project.env_file)
        parsed = parser.parse(file)
        orchestrator = ServiceOrchestrator(project)
        orchestrator.up(parsed, options)
    except StackupError as e:
        raise click.ClickException(str(e)) from e
    except KeyboardInterrupt:
        click.echo("\nInterrupted.", err=True)
        ctx.exit(130)


def main():
    """
    Main entry point for the CLI.
    """
    cli(obj={})


if __name__ == '__main__':
    main()
