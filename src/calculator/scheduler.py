"""
Dependency Scheduler.

Orders calculations so each runs only after its dependencies are known.
The dependency graph is built once per configuration; every pass walks a
topological order of it, so a pass is bounded by the number of
calculations and a cycle is reported instead of looping.
"""

from __future__ import annotations

import logging
import time
from typing import Dict, Iterable, List, Optional

import networkx as nx

from calculator.context import VariableContext
from calculator.errors import MissingDependency, UnknownCalculation, UnresolvedGraph
from calculator.formula import FormulaEvaluator
from models.calculator_config import Calculation
from services.logging_config import CalculationLogger

logger = logging.getLogger(__name__)


class DependencyScheduler:
    """
    Resolve calculations in dependency order.

    Nodes are calculation ids; an edge dep -> calc exists for every
    dependency that is itself a calculation. Dependencies that are not
    calculations are inputs and must be present in the context.
    """

    def __init__(self, calculations: Iterable[Calculation]):
        self._calculations: Dict[str, Calculation] = {}
        for calc in calculations:
            if calc.id in self._calculations:
                logger.warning(f"Duplicate calculation {calc.id}, keeping the first definition")
                continue
            self._calculations[calc.id] = calc

        self._position = {calc_id: i for i, calc_id in enumerate(self._calculations)}
        self.graph = nx.DiGraph()
        self.graph.add_nodes_from(self._calculations)
        for calc in self._calculations.values():
            for dep in calc.depends_on:
                if dep in self._calculations:
                    self.graph.add_edge(dep, calc.id)

    @property
    def calculation_ids(self) -> List[str]:
        return list(self._calculations)

    def get(self, calculation_id: str) -> Calculation:
        calc = self._calculations.get(calculation_id)
        if calc is None:
            raise UnknownCalculation(calculation_id)
        return calc

    def find_cycles(self) -> List[List[str]]:
        """
        Every elementary cycle, in depends-on order (each id depends on the
        next), rotated to start at its first-configured id.
        """
        cycles = []
        for cycle in nx.simple_cycles(self.graph):
            cycle = cycle[::-1]
            start = min(range(len(cycle)), key=lambda i: self._position[cycle[i]])
            cycles.append(cycle[start:] + cycle[:start])
        return sorted(cycles, key=lambda c: [self._position[n] for n in c])

    def execution_order(self) -> List[str]:
        """
        Topological order, ties broken by configuration order.

        Raises:
            UnresolvedGraph: If the calculations contain a cycle
        """
        try:
            return list(
                nx.lexicographical_topological_sort(self.graph, key=self._position.__getitem__)
            )
        except nx.NetworkXUnfeasible:
            cycles = self.find_cycles()
            logger.error(f"Circular dependencies between calculations: {cycles}")
            raise UnresolvedGraph(
                cycles=cycles,
                unresolved=sorted({n for c in cycles for n in c}, key=self._position.__getitem__),
            )

    def calculate(
        self,
        calculation_id: str,
        context: VariableContext,
        evaluator: FormulaEvaluator,
    ) -> float:
        """
        Evaluate one calculation against the current context.

        Every declared dependency must already be in the context; the
        result is returned but not stored.

        Raises:
            UnknownCalculation: If the id is not configured
            MissingDependency: If a dependency is absent from the context
        """
        calc = self.get(calculation_id)
        for dep in calc.depends_on:
            if not context.has(dep):
                raise MissingDependency(calculation_id, dep)
        return evaluator.evaluate(calc.formula)

    def calculate_all(
        self,
        context: VariableContext,
        evaluator: FormulaEvaluator,
        calc_logger: Optional[CalculationLogger] = None,
    ) -> Dict[str, float]:
        """
        Resolve every calculation and store each result in the context.

        Returns:
            calculation id -> value, in execution order

        Raises:
            UnresolvedGraph: On a cycle, or when inputs are missing. Every
                             calculation that could be resolved has been
                             computed and stored before the error is raised.
        """
        calc_logger = calc_logger or CalculationLogger()
        order = self.execution_order()
        calc_logger.start_pass(len(order))

        results: Dict[str, float] = {}
        missing: Dict[str, List[str]] = {}
        unresolved: List[str] = []

        for calc_id in order:
            calc = self._calculations[calc_id]
            blocked = False
            absent: List[str] = []
            for dep in calc.depends_on:
                if dep in self._calculations:
                    if dep not in results:
                        blocked = True
                elif not context.has(dep):
                    absent.append(dep)
            if absent:
                missing[calc_id] = absent
            if blocked or absent:
                unresolved.append(calc_id)
                continue

            step_start = time.time()
            value = evaluator.evaluate(calc.formula)
            context.set_variable(calc_id, value)
            results[calc_id] = value
            calc_logger.log_step(calc_id, value, step_start)

        if unresolved:
            calc_logger.log_warning(
                "Calculations left unresolved",
                unresolved=unresolved,
                missing=missing,
            )
            raise UnresolvedGraph(missing=missing, unresolved=unresolved, partial_results=results)

        calc_logger.complete_pass(len(results))
        return results
