"""Apply every registered custom check to the blocks it targets."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Tuple

from tfchecks.blocks import Block, Modules
from tfchecks.config import ScanConfig
from tfchecks.result import Finding, ScanResult
from tfchecks.rules import ScanContext
from tfchecks.severity import Severity

from .checks import Check, CheckRegistry
from .context import EvaluationContext
from .evaluator import evaluate

logger = logging.getLogger(__name__)


class CustomCheckRunner:
    """Evaluate each check's match spec against every block it applies to.

    The block model and the registry are only read, so (check, block) pairs
    are independent and may be spread over a thread pool. Each pair gets its
    own :class:`EvaluationContext`.
    """

    name = "custom"

    def __init__(self, registry: CheckRegistry, config: Optional[ScanConfig] = None) -> None:
        self.registry = registry
        self.config = config or ScanConfig()

    def scan(self, context: ScanContext, result: ScanResult) -> None:
        for finding in self.run(context.modules):
            result.add_finding(finding)

    def run(self, modules: Modules) -> List[Finding]:
        """Return the findings for ``modules`` in (check, block) order."""

        pairs = self._select(modules)
        if self.config.workers > 1 and len(pairs) > 1:
            with ThreadPoolExecutor(max_workers=self.config.workers) as pool:
                outcomes = list(pool.map(lambda pair: self._evaluate(pair[0], pair[1], modules), pairs))
        else:
            outcomes = [self._evaluate(check, block, modules) for check, block in pairs]

        findings = [finding for finding in outcomes if finding is not None]
        logger.debug("Evaluated %d check/block pairs, %d findings", len(pairs), len(findings))
        return findings

    def _select(self, modules: Modules) -> List[Tuple[Check, Block]]:
        pairs: List[Tuple[Check, Block]] = []
        for check in self.registry.checks():
            if self.config.is_excluded(check.code):
                logger.debug("Skipping excluded check %s", check.code)
                continue
            pairs.extend((check, block) for block in modules.blocks() if check.applies_to(block))
        return pairs

    def _evaluate(self, check: Check, block: Block, modules: Modules) -> Optional[Finding]:
        if evaluate(check.match_spec, block, EvaluationContext(modules)):
            return None
        severity = self.config.severity_for(check.code, check.severity)
        if severity < self.config.minimum_severity:
            return None
        return build_finding(check, block, severity)


def build_finding(check: Check, block: Block, severity: Optional[Severity] = None) -> Finding:
    return Finding(
        code=check.code,
        severity=severity or check.severity,
        description=check.description,
        resource=block.address,
        location=str(block.location),
        message=check.render_message(block),
        related_links=check.related_links,
        impact=check.impact,
        resolution=check.resolution,
    )
