"""Tool usage analyzer: frequency, adjacent pairs, repeated parameters."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from mnemo.analyzers.base import PatternAnalyzer
from mnemo.core.models import Message, Observation, Transcript

MIN_FREQUENCY = 3
MIN_PAIR_FREQUENCY = 2
MAX_VALUES_PER_PARAM = 3

PAIR_ARROW = " → "


@dataclass
class _ToolStats:
    frequency: int = 0
    # parameter name -> value -> count, in first-seen order
    parameters: dict[str, Counter] = field(default_factory=dict)


def _is_scalar(value: Any) -> bool:
    return value is None or isinstance(value, (str, int, float, bool))


class ToolUsageAnalyzer(PatternAnalyzer):
    """Finds frequently used tools, recurring tool pairs and sticky parameters."""

    name = "tool-usage"

    def analyze(self, transcript: Transcript, messages: list[Message]) -> list[Observation]:
        stats = self._collect_stats(messages)
        pairs = self._collect_pairs(messages)

        observations: list[Observation] = []
        observations.extend(self._frequency_observations(stats, transcript))
        observations.extend(self._pair_observations(pairs, transcript))
        observations.extend(self._parameter_observations(stats, transcript))
        return observations

    def _collect_stats(self, messages: list[Message]) -> dict[str, _ToolStats]:
        stats: dict[str, _ToolStats] = {}
        for message in messages:
            for use in message.tool_uses:
                stat = stats.setdefault(use.name, _ToolStats())
                stat.frequency += 1
                for key, value in (use.input or {}).items():
                    if not _is_scalar(value):
                        continue
                    stat.parameters.setdefault(key, Counter())[value] += 1
        return stats

    def _collect_pairs(self, messages: list[Message]) -> Counter:
        """Pairs of first tools between directly consecutive tool-bearing messages."""
        pairs: Counter = Counter()
        for current, following in zip(messages, messages[1:]):
            if not current.tool_uses or not following.tool_uses:
                continue
            key = f"{current.tool_uses[0].name}{PAIR_ARROW}{following.tool_uses[0].name}"
            pairs[key] += 1
        return pairs

    def _frequency_observations(
        self, stats: dict[str, _ToolStats], transcript: Transcript
    ) -> list[Observation]:
        result = []
        for tool_name, stat in stats.items():
            if stat.frequency < MIN_FREQUENCY:
                continue
            result.append(
                self.draft(
                    f"Frequently uses {tool_name} tool ({stat.frequency} times)",
                    "tool-choice",
                    transcript,
                    {"tool_name": tool_name, "frequency": stat.frequency},
                )
            )
        return result

    def _pair_observations(self, pairs: Counter, transcript: Transcript) -> list[Observation]:
        result = []
        for pair, frequency in pairs.items():
            if frequency < MIN_PAIR_FREQUENCY:
                continue
            result.append(
                self.draft(
                    f"Common workflow pattern: {pair} ({frequency} times)",
                    "workflow",
                    transcript,
                    {
                        "tool_name": "workflow",
                        "frequency": frequency,
                        "typical_sequence": pair.split(PAIR_ARROW),
                    },
                )
            )
        return result

    def _parameter_observations(
        self, stats: dict[str, _ToolStats], transcript: Transcript
    ) -> list[Observation]:
        result = []
        for tool_name, stat in stats.items():
            if stat.frequency < MIN_FREQUENCY:
                continue

            common: dict[str, list] = {}
            for param, counts in stat.parameters.items():
                for value, count in counts.items():
                    if count < MIN_FREQUENCY:
                        continue
                    values = common.setdefault(param, [])
                    values.append(value)
                    if len(values) >= MAX_VALUES_PER_PARAM:
                        break

            if not common:
                continue

            result.append(
                self.draft(
                    f"Commonly uses {tool_name} with parameters: {', '.join(common)}",
                    "pattern",
                    transcript,
                    {
                        "tool_name": tool_name,
                        "frequency": stat.frequency,
                        "common_parameters": common,
                    },
                )
            )
        return result
