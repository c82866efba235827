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
Unit tests for the compose parser.
"""
import os
import pytest
import yaml

from stackup.MODELS.service_definition import PullMode
from stackup.PARSERS.compose_parser import ComposeParser
from stackup.errors import ConfigurationError


def test_parse_compose_file(tmp_path):
    compose_content = {
        'services': {
            'web': {
                'image': 'nginx:latest',
                'ports': ['80:80'],
                'environment': {
                    'DEBUG': 'true'
                },
                'restart': 'always'
            },
            'db': {
                'image': 'postgres:13',
                'volumes': ['db_data:/var/lib/postgresql/data', './init:/docker-entrypoint-initdb.d:ro']
            }
        },
        'volumes': {
            'db_data': {}
        }
    }

    compose_file = tmp_path / "docker-compose.yml"
    with open(compose_file, 'w') as f:
        yaml.dump(compose_content, f, sort_keys=False)

    parser = ComposeParser("proj", str(tmp_path), context={})
    services = parser.parse(str(compose_file))

    assert [s.name for s in services] == ['web', 'db']
    web, db = services
    assert web.image == 'nginx:latest'
    assert web.pull_mode == PullMode.MISSING
    assert [c.name for c in web.containers] == ['proj-web-1']

    args = web.containers[0].run_args
    assert args[:2] == ['--name=proj-web-1', '--pull=never']
    assert '--restart=always' in args
    assert args[args.index('-p') + 1] == '80:80'
    assert args[args.index('-e') + 1] == 'DEBUG=true'
    assert args[-1] == 'nginx:latest'

    db_args = db.containers[0].run_args
    assert 'db_data:/var/lib/postgresql/data' in db_args
    init_dir = os.path.join(str(tmp_path), 'init')
    assert f'{init_dir}:/docker-entrypoint-initdb.d:ro' in db_args
    assert db.containers[0].mkdir == [init_dir]


def test_build_and_defaults():
    content = """
services:
  app:
    build:
      context: ./app
      dockerfile: Dockerfile.dev
      args:
        - VERSION=1.2
    command: python -m app --port 8000
    stdin_open: true
    tty: true
    pull_policy: build
    deploy:
      replicas: 2
"""
    parser = ComposeParser("shop", "/srv/shop", context={})
    app = parser.parse_from_string(content)[0]

    assert app.image == 'shop-app'
    assert app.build.context == os.path.normpath('/srv/shop/app')
    assert app.build.dockerfile == 'Dockerfile.dev'
    assert app.build.args == {'VERSION': '1.2'}
    assert app.pull_mode == PullMode.BUILD
    assert app.stdin_open and app.tty
    assert [c.name for c in app.containers] == ['shop-app-1', 'shop-app-2']
    args = app.containers[0].run_args
    assert '-i' in args and '-t' in args
    assert args[args.index('shop-app'):] == ['shop-app', 'python', '-m', 'app', '--port', '8000']


def test_entrypoint_and_container_name():
    content = """
services:
  worker:
    image: busybox
    container_name: the-worker
    entrypoint: ["sh", "-c"]
    command: ["echo hi"]
"""
    worker = ComposeParser("proj", "/tmp", context={}).parse_from_string(content)[0]
    args = worker.containers[0].run_args
    assert worker.containers[0].name == 'the-worker'
    assert '--entrypoint=sh' in args
    assert args[args.index('busybox'):] == ['busybox', '-c', 'echo hi']


def test_interpolation_from_context():
    content = """
services:
  web:
    image: nginx:${TAG:-stable}
    environment:
      - MODE=${MODE}
"""
    parser = ComposeParser("proj", "/tmp", context={'MODE': 'prod'})
    web = parser.parse_from_string(content)[0]
    assert web.image == 'nginx:stable'
    assert 'MODE=prod' in web.containers[0].run_args


def test_dotenv_context(tmp_path, monkeypatch):
    (tmp_path / ".env").write_text("TAG=1.25\n")
    monkeypatch.delenv("TAG", raising=False)
    parser = ComposeParser("proj", str(tmp_path))
    web = parser.parse_from_string("services:\n  web:\n    image: nginx:${TAG}\n")[0]
    assert web.image == 'nginx:1.25'


@pytest.mark.parametrize("content", [
    "services: [1, 2]",
    "services:\n  web:\n    restart: always\n",
    "services:\n  web:\n    image: x\n    pull_policy: sometimes\n",
    "services:\n  web:\n    image: x\n    container_name: y\n    scale: 2\n",
    "services:\n  web: {image: [unterminated\n",
])
def test_invalid_files(content):
    with pytest.raises(ConfigurationError):
        ComposeParser("proj", "/tmp", context={}).parse_from_string(content)
