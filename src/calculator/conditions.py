"""Condition evaluation: if/then/else rules applied after calculations settle."""

import logging
from typing import Dict, Iterable

from calculator.context import VariableContext
from calculator.formula import FormulaEvaluator
from models.calculator_config import Condition

logger = logging.getLogger(__name__)

RESULT_SUFFIX = "_result"


def result_key(condition_id: str) -> str:
    """Context key a condition stores its outcome under."""
    return f"{condition_id}{RESULT_SUFFIX}"


class ConditionEvaluator:
    """
    Apply conditions in configuration order.

    A condition whose ``if`` formula is non-zero stores its ``then`` value
    as ``<id>_result``; otherwise its ``else`` value, when one is given.
    Later conditions see the results of earlier ones.
    """

    def __init__(self, conditions: Iterable[Condition]):
        self.conditions = list(conditions)

    def evaluate(self, context: VariableContext, evaluator: FormulaEvaluator) -> Dict[str, float]:
        stored: Dict[str, float] = {}
        for condition in self.conditions:
            if evaluator.evaluate(condition.if_):
                formula = condition.then
            elif condition.else_:
                formula = condition.else_
            else:
                logger.debug(f"Condition {condition.id} not met, nothing stored")
                continue

            key = result_key(condition.id)
            value = evaluator.evaluate(formula)
            context.set_variable(key, value)
            stored[key] = value
        return stored
