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
Shared fakes standing in for the container engine.
"""
import _thread
import itertools
import sys
import threading

import pytest

from stackup.MODELS.project_config import ProjectConfig
from stackup.MODELS.service_definition import Container, Service
from stackup.RUNNERS.engine_client import EngineClient
from stackup.errors import EngineError


class FakeEngine(EngineClient):
    """
    Engine client that records calls instead of running the engine.

    :param images: Image references that already exist.
    :param containers: Existing containers, name -> ID.
    """
    def __init__(self, images=(), containers=None, project_name="proj"):
        super().__init__(project_name, engine="fake-engine")
        self.images = set(images)
        self.containers = dict(containers or {})
        self.calls = []
        self.fail = set()
        self._lock = threading.Lock()

    def _record(self, *call):
        with self._lock:
            self.calls.append(call)
        if call[0] in self.fail:
            raise EngineError(f"{call[0]} failed")

    def calls_named(self, name):
        return [c for c in self.calls if c[0] == name]

    def image_exists(self, ref):
        self._record("image_exists", ref)
        return ref in self.images

    def build_image(self, ref, build, platform=None):
        self._record("build", ref)
        self.images.add(ref)

    def ensure_image(self, ref, pull_mode, platform=None, quiet=False):
        self._record("ensure", ref, pull_mode, quiet)

    def container_id(self, name, service_name):
        self._record("container_id", name, service_name)
        return self.containers.get(name, "")

    def remove_container(self, name):
        self._record("remove", name)
        self.containers.pop(name, None)

    def kill_container(self, container_id):
        self._record("kill", container_id)

    def service_container_ids(self, service_name):
        self._record("service_container_ids", service_name)
        return []


class FakeExecutor:
    """
    Command executor that records commands and writes a container ID into
    the cidfile of every run command, as the engine would.
    """
    def __init__(self, fail_for=(), skip_cidfile=False):
        self.fail_for = set(fail_for)
        self.skip_cidfile = skip_cidfile
        self.commands = []
        self.cidfiles = []
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def execute(self, command, container_name, detach, stdin_open):
        with self._lock:
            self.commands.append((list(command), container_name, detach, stdin_open))
            cid = f"cid-{next(self._ids):04d}"
        if container_name in self.fail_for:
            raise EngineError(f"container {container_name}: run failed", container=container_name, returncode=1)
        if command[1] == "run":
            cidfile = next(a.split("=", 1)[1] for a in command if a.startswith("--cidfile="))
            with self._lock:
                self.cidfiles.append(cidfile)
            if not self.skip_cidfile:
                with open(cidfile, "w") as f:
                    f.write(cid + "\n")

    def subcommands(self):
        return [c[0][1] for c in self.commands]


class StreamEngine(FakeEngine):
    """Engine whose ``logs`` runs a Python snippet per container."""

    def __init__(self, scripts):
        super().__init__()
        self.scripts = scripts

    def service_container_ids(self, service_name):
        self._record("service_container_ids", service_name)
        return [cid for cid in self.scripts if cid.startswith(service_name)]

    def container_name(self, container_id):
        return f"proj-{container_id}"

    def container_started_at(self, container_id):
        self._record("started_at", container_id)
        return "2024-01-01T00:00:00Z"

    def logs_command(self, container_id, follow=False, since=None):
        self._record("logs", container_id, follow, since)
        return [sys.executable, "-c", self.scripts[container_id]]


def interrupt_on_first_line(lines):
    """
    Builds an echo callback that collects lines and simulates Ctrl-C in the
    main thread shortly after the first one arrives.
    """
    def echo(line):
        if not lines:
            threading.Timer(0.2, _thread.interrupt_main).start()
        lines.append(line)
    return echo


def make_service(name="web", replicas=1, stdin_open=False, tty=False, **kwargs):
    """Builds a service whose containers run its image."""
    image = kwargs.pop("image", f"{name}:latest")
    containers = [
        Container(name=f"proj-{name}-{i}", run_args=[f"--name=proj-{name}-{i}", image])
        for i in range(1, replicas + 1)
    ]
    return Service(name=name, image=image, stdin_open=stdin_open, tty=tty,
                   containers=containers, **kwargs)


@pytest.fixture
def project():
    return ProjectConfig(name="proj")


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def executor():
    return FakeExecutor()


@pytest.fixture
def scratch_root(tmp_path, monkeypatch):
    """Redirects temporary directories into tmp_path so leftovers can be checked."""
    root = tmp_path / "scratch"
    root.mkdir()
    monkeypatch.setattr("tempfile.tempdir", str(root))
    return root


@pytest.fixture
def service_factory():
    return make_service


@pytest.fixture
def executor_factory():
    return FakeExecutor


@pytest.fixture
def engine_factory():
    return FakeEngine


@pytest.fixture
def streams():
    return StreamEngine


@pytest.fixture
def interrupting_echo():
    return interrupt_on_first_line
