"""Workflow sequence detector: recurring multi-step chains and loops."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass

from mnemo.analyzers.base import PatternAnalyzer
from mnemo.core.models import Message, Observation, Transcript

MIN_SEQUENCE_LENGTH = 3
MAX_WINDOW_SIZE = 5
MIN_SEQUENCE_FREQUENCY = 2
MIN_LOOP_FREQUENCY = 2
LOOP_PERIODS = (2, 3)

ARROW = " → "


@dataclass
class Sequence:
    steps: tuple[str, ...]
    frequency: int


@dataclass
class Loop:
    cycle: tuple[str, ...]
    frequency: int
    full_sequence: list[str]


def tool_chain(messages: list[Message]) -> list[str]:
    """All tool names across the transcript, in call order."""
    return [use.name for message in messages for use in message.tool_uses]


def is_contiguous_subsequence(sub: tuple[str, ...], full: tuple[str, ...]) -> bool:
    if len(sub) > len(full):
        return False
    return any(full[i : i + len(sub)] == sub for i in range(len(full) - len(sub) + 1))


def mine_sequences(chain: list[str]) -> list[Sequence]:
    """Subsequences of length 3..5 occurring at least twice, minus subsumed ones."""
    counts: Counter = Counter()
    for size in range(MIN_SEQUENCE_LENGTH, min(MAX_WINDOW_SIZE, len(chain)) + 1):
        for i in range(len(chain) - size + 1):
            counts[tuple(chain[i : i + size])] += 1

    candidates = [
        Sequence(steps=steps, frequency=count)
        for steps, count in counts.items()
        if count >= MIN_SEQUENCE_FREQUENCY
    ]
    return _drop_subsumed(candidates)


def _drop_subsumed(candidates: list[Sequence]) -> list[Sequence]:
    # A shorter sequence is dropped when a strictly longer kept sequence that
    # occurs at least as often contains it.
    kept: list[Sequence] = []
    for candidate in sorted(candidates, key=lambda s: len(s.steps), reverse=True):
        subsumed = any(
            len(longer.steps) > len(candidate.steps)
            and longer.frequency >= candidate.frequency
            and is_contiguous_subsequence(candidate.steps, longer.steps)
            for longer in kept
        )
        if not subsumed:
            kept.append(candidate)
    return kept


def detect_loops(chain: list[str], period: int) -> list[Loop]:
    """Cycles of ``period`` tools repeated back-to-back at least twice.

    Each distinct cycle is reported once with its highest repetition count.
    """
    loops: dict[tuple[str, ...], Loop] = {}
    for i in range(len(chain) - period * MIN_LOOP_FREQUENCY + 1):
        cycle = tuple(chain[i : i + period])
        repetitions = 1
        end = i + period
        while end + period <= len(chain) and tuple(chain[end : end + period]) == cycle:
            repetitions += 1
            end += period

        if repetitions < MIN_LOOP_FREQUENCY:
            continue
        existing = loops.get(cycle)
        if existing is None or repetitions > existing.frequency:
            loops[cycle] = Loop(cycle=cycle, frequency=repetitions, full_sequence=chain[i:end])
    return list(loops.values())


class WorkflowSequenceDetector(PatternAnalyzer):
    name = "workflow-sequence"

    def analyze(self, transcript: Transcript, messages: list[Message]) -> list[Observation]:
        chain = tool_chain(messages)
        if len(chain) < MIN_SEQUENCE_LENGTH:
            return []

        observations: list[Observation] = []
        for seq in sorted(mine_sequences(chain), key=lambda s: s.frequency, reverse=True):
            observations.append(
                self.draft(
                    f"Workflow pattern: {ARROW.join(seq.steps)} ({seq.frequency} times)",
                    "workflow",
                    transcript,
                    {
                        "sequence_steps": list(seq.steps),
                        "sequence_length": len(seq.steps),
                        "frequency": seq.frequency,
                    },
                )
            )

        for period in LOOP_PERIODS:
            for loop in detect_loops(chain, period):
                observations.append(
                    self.draft(
                        f"Iterative loop detected: [{ARROW.join(loop.cycle)}] "
                        f"repeated {loop.frequency} times",
                        "workflow",
                        transcript,
                        {
                            "loop_cycle": list(loop.cycle),
                            "loop_frequency": loop.frequency,
                            "full_sequence": loop.full_sequence,
                        },
                    )
                )
        return observations
