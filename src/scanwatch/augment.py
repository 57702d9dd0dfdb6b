"""Default SARIF augmentation: attach rule metadata to each result.

The report cache treats augmentation as an opaque ``Callable[[dict], None]``
that mutates a parsed log in place. :class:`RuleAugmenter` is the default.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from .logging_config import get_logger

logger = get_logger(__name__)

LogAugmenter = Callable[[dict[str, Any]], None]

RULE_KEY = "_rule"


class RuleAugmenter:
    """Resolves every result's rule and stores it under ``_rule``.

    Rules come from ``tool.driver.rules`` by ``ruleIndex`` or ``ruleId``.
    Results naming a rule the driver does not declare get a placeholder
    from :attr:`driverless_rules`, shared across logs handled by this
    instance so repeated installs of the same rule reuse one object.
    """

    def __init__(self) -> None:
        self.driverless_rules: dict[str, dict[str, Any]] = {}

    def __call__(self, log: dict[str, Any]) -> None:
        for run in log.get("runs") or []:
            self._augment_run(run)

    def _augment_run(self, run: dict[str, Any]) -> None:
        driver = (run.get("tool") or {}).get("driver") or {}
        rules: list[dict[str, Any]] = driver.get("rules") or []
        by_id = {rule["id"]: rule for rule in rules if isinstance(rule, dict) and "id" in rule}

        for result in run.get("results") or []:
            rule = self._resolve(result, rules, by_id)
            if rule is not None:
                result[RULE_KEY] = rule

    def _resolve(
        self,
        result: dict[str, Any],
        rules: list[dict[str, Any]],
        by_id: dict[str, dict[str, Any]],
    ) -> Optional[dict[str, Any]]:
        index = result.get("ruleIndex")
        if isinstance(index, int) and 0 <= index < len(rules):
            return rules[index]

        rule_id = result.get("ruleId") or (result.get("rule") or {}).get("id")
        if not rule_id:
            return None
        if rule_id in by_id:
            return by_id[rule_id]

        if rule_id not in self.driverless_rules:
            logger.debug("Synthesizing driverless rule %s", rule_id)
            self.driverless_rules[rule_id] = {"id": rule_id}
        return self.driverless_rules[rule_id]
