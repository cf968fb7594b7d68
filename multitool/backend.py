"""Execution backend contracts and the default sequential runner."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from multitool.config import RuntimeConfig

logger = logging.getLogger(__name__)


class ExecutableUnit(Protocol):
    """Work produced by a tool, sequenced by an execution backend."""

    config: RuntimeConfig

    def compile(self) -> Any:
        """Build the executable image from scratch."""

    def save(self, image: Any, path: str) -> None:
        """Persist ``image`` under ``path``."""

    def load(self, path: str) -> Any:
        """Load an image previously written by ``save``."""

    def execute(self, image: Any) -> int:
        """Run ``image`` and return the exit status."""


class ExecutionBackend(Protocol):
    """Runs an executable unit and reports its exit status."""

    def run(self, unit: ExecutableUnit) -> int:
        """Run ``unit`` to completion."""


class GraphRunner:
    """Default backend: load or compile, optionally save, then execute.

    Device acquisition is only recorded here; managing physical devices is the
    job of whatever the unit's ``execute`` talks to.
    """

    def __init__(self) -> None:
        self.attached_devices = 0

    def run(self, unit: ExecutableUnit) -> int:
        config = unit.config
        self.attached_devices = 0
        attached = False
        if not config.defer_attach:
            attached = self._attach(config)

        if config.restore:
            logger.info("Loading executable image from '%s'", config.image_path)
            image = unit.load(config.image_path)
        else:
            logger.info("Compiling executable image")
            image = unit.compile()

        if config.persist:
            logger.info("Saving executable image to '%s'", config.image_path)
            unit.save(image, config.image_path)

        if config.compile_only:
            logger.info("Compile only: skipping execution")
            return 0

        if not attached:
            self._attach(config)
        status = unit.execute(image)
        logger.info("Execution finished with status %d", status)
        return status

    def _attach(self, config: RuntimeConfig) -> bool:
        target = "simulated" if config.use_simulator else "hardware"
        logger.info("Attaching to %d %s device(s)", config.device_count, target)
        self.attached_devices = config.device_count
        return True
