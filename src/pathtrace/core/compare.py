# src/pathtrace/core/compare.py
#!/usr/bin/env python3
"""Comparison mode: the same problem, two algorithms, two independent runs."""

from dataclasses import dataclass, replace

from pathtrace.core.dna import AlgorithmDNA, compute_algorithm_dna
from pathtrace.core.engine import build_trace
from pathtrace.core.types import RunOptions, Trace


@dataclass(frozen=True)
class Comparison:
    primary: Trace
    secondary: Trace
    primary_dna: AlgorithmDNA
    secondary_dna: AlgorithmDNA


def run_comparison(environment, start_key: str, goal_key: str, options: RunOptions,
                   compare_algorithm: str) -> Comparison:
    secondary_options = replace(options, algorithm=compare_algorithm)
    primary = build_trace(environment, start_key, goal_key, options)
    secondary = build_trace(environment, start_key, goal_key, secondary_options)
    return Comparison(
        primary=primary,
        secondary=secondary,
        primary_dna=compute_algorithm_dna(primary),
        secondary_dna=compute_algorithm_dna(secondary),
    )
