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
Log aggregation and tailing for the containers of a project.
"""
import logging
import subprocess
import threading
from typing import Callable, List, Optional, Tuple

import click

from ..MODELS.up_options import LogsOptions
from ..RUNNERS.engine_client import EngineClient
from ..errors import EngineError

logger = logging.getLogger(__name__)

PREFIX_COLORS = ["cyan", "yellow", "green", "magenta", "blue", "red"]


class LogAggregator:
    """
    Streams the logs of every container of the given services to stdout,
    one engine ``logs`` process per container.
    """
    def __init__(self, engine: EngineClient, echo: Optional[Callable[[str], None]] = None):
        """
        :param engine: Client for the external engine.
        :param echo: Writes one output line, defaults to ``click.echo``.
        """
        self.engine = engine
        self.echo = echo or click.echo
        self._echo_lock = threading.Lock()

    def attach(self, service_names: List[str], options: LogsOptions):
        """
        Attaches to the logs of the services and blocks until the streams end.

        With ``abort_on_container_exit`` the call returns as soon as the first
        stream ends, otherwise once all of them have ended. An interrupt
        (Ctrl-C) detaches from every stream and returns normally.

        :param service_names: Services whose containers are attached.
        :param options: How to attach and format the output.
        :raises EngineError: If the containers cannot be listed or a stream cannot be started.
        """
        targets = self._resolve_targets(service_names)
        if not targets:
            logger.info("No containers to attach to")
            return

        width = max(len(name) for _, name, _ in targets)
        streams: List[Tuple[subprocess.Popen, threading.Thread]] = []
        finished = threading.Event()

        try:
            for container_id, name, color in targets:
                since = self.engine.container_started_at(container_id) if options.latest_run else None
                cmd = self.engine.logs_command(container_id, follow=options.follow, since=since)
                try:
                    proc = subprocess.Popen(
                        cmd,
                        stdin=subprocess.DEVNULL,
                        stdout=subprocess.PIPE,
                        stderr=subprocess.STDOUT,
                        text=True,
                        shell=False,
                    )
                except OSError as e:
                    raise EngineError(f"failed to attach to logs of {name}: {e}", container=name) from e

                prefix = self._prefix(name, width, color, options)
                thread = threading.Thread(
                    target=self._pump, args=(proc, prefix, finished), name=f"logs-{name}", daemon=True
                )
                thread.start()
                streams.append((proc, thread))

            try:
                self._wait(streams, finished, options.abort_on_container_exit)
            except KeyboardInterrupt:
                logger.info("Interrupted, detaching from logs")
        finally:
            for proc, _ in streams:
                if proc.poll() is None:
                    proc.terminate()
            for proc, thread in streams:
                proc.wait()
                thread.join()

    @staticmethod
    def _wait(streams: List[Tuple[subprocess.Popen, threading.Thread]], finished: threading.Event,
              abort_on_exit: bool):
        if abort_on_exit:
            while not finished.wait(0.1):
                pass
            logger.info("A container exited, aborting")
        else:
            for _, thread in streams:
                while thread.is_alive():
                    thread.join(0.1)

    def _resolve_targets(self, service_names: List[str]) -> List[Tuple[str, str, str]]:
        targets = []
        for i, service in enumerate(service_names):
            color = PREFIX_COLORS[i % len(PREFIX_COLORS)]
            for container_id in self.engine.service_container_ids(service):
                targets.append((container_id, self.engine.container_name(container_id), color))
        return targets

    @staticmethod
    def _prefix(name: str, width: int, color: str, options: LogsOptions) -> str:
        if options.no_log_prefix:
            return ""
        prefix = f"{name:{width}} | "
        if options.no_color:
            return prefix
        return click.style(prefix, fg=color)

    def _pump(self, proc: subprocess.Popen, prefix: str, finished: threading.Event):
        try:
            for line in proc.stdout:
                with self._echo_lock:
                    self.echo(prefix + line.rstrip("\n"))
        finally:
            proc.stdout.close()
            finished.set()
