"""
Documentation lifecycle: initial synthesis and coalesced rebuilds.

A rebuild is one atomic pass: load the declaration graph, scan it, synthesize
the document, then publish it. Only one pass runs at a time. Rebuild requests
that arrive while a pass is in flight collapse into exactly one follow-up
pass, run by the thread that owns the current pass.
"""

import copy
import logging
from threading import Condition, Lock
from typing import Any, Callable, Dict, List, Optional, Sequence

from autodocs.base import ServiceDescriptor
from autodocs.config import AutoDocsConfig
from autodocs.declarations import SourceUnit
from autodocs.openapi import OpenAPISynthesizer, to_json
from autodocs.scanner import ServiceScanner

logger = logging.getLogger("autodocs.service")

UnitLoader = Callable[[], Sequence[SourceUnit]]


class AutoDocsService:
    """Owns the published document; safe to signal from any thread."""

    def __init__(self, config: AutoDocsConfig, load_units: UnitLoader,
                 scanner: Optional[ServiceScanner] = None):
        self.config = config
        self.load_units = load_units
        self.scanner = scanner or ServiceScanner(config)
        self.synthesizer = OpenAPISynthesizer(config)

        self._lock = Lock()
        self._idle = Condition(self._lock)
        self._running = False
        self._pending = False
        self._document: Optional[Dict[str, Any]] = None
        self._services: List[ServiceDescriptor] = []
        self.passes = 0

    def initialize(self) -> bool:
        """Run the start-up pass when ``scan_on_start`` is set."""
        if not self.config.scan_on_start:
            logger.info("scan_on_start disabled; document will be built on first request")
            return False
        return self.request_rebuild()

    def request_rebuild(self) -> bool:
        """
        Rebuild now, or mark a follow-up pass if one is already running.

        Returns True when this call ran the pass(es) itself, False when the
        request was coalesced into an in-flight pass.
        """
        with self._lock:
            if self._running:
                self._pending = True
                logger.debug("Rebuild in flight; coalescing request")
                return False
            self._running = True

        try:
            while True:
                with self._lock:
                    self._pending = False
                self._rebuild_once()
                with self._lock:
                    if not self._pending:
                        self._running = False
                        self._idle.notify_all()
                        return True
        except Exception:
            with self._lock:
                self._running = False
                self._pending = False
                self._idle.notify_all()
            raise

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until no pass is running; False if the timeout expired first."""
        with self._idle:
            return self._idle.wait_for(lambda: not self._running, timeout)

    def notify_change(self, path: Optional[str] = None) -> bool:
        """Hook for an external file watcher; ignored unless ``watch_mode`` is on."""
        if not self.config.watch_mode:
            logger.debug(f"Ignoring change notification for {path}: watch_mode disabled")
            return False
        logger.debug(f"Change detected in {path or 'source tree'}")
        return self.request_rebuild()

    def _rebuild_once(self):
        try:
            units = list(self.load_units())
            services = self.scanner.scan(units)
            document = self.synthesizer.synthesize(services)
        except Exception as e:
            logger.error(f"Rebuild failed, keeping previous document: {e}")
            raise

        with self._lock:
            self._document = document
            self._services = services
            self.passes += 1
        logger.info(f"Published document (pass {self.passes}): {len(document['paths'])} paths")

    @property
    def services(self) -> List[ServiceDescriptor]:
        with self._lock:
            return list(self._services)

    def document(self) -> Optional[Dict[str, Any]]:
        """The last successfully synthesized document, built lazily if none exists yet."""
        if self._document is None and not self.request_rebuild():
            self.wait_idle()
        with self._lock:
            return copy.deepcopy(self._document)

    def spec_json(self) -> str:
        return to_json(self.document() or {})
