"""Error pattern detector: failing tools, recurring errors, recovery habits."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

from mnemo.analyzers.base import PatternAnalyzer
from mnemo.core.models import Message, Observation, Transcript

MIN_ERROR_COUNT = 2
MIN_ERROR_RATE = 0.2
MIN_MESSAGE_FREQUENCY = 2
MAX_MESSAGE_LENGTH = 100


@dataclass
class _ErrorStats:
    total_calls: int = 0
    error_count: int = 0
    error_messages: list[str] = field(default_factory=list)


def normalize_error_message(message: str) -> str:
    """Trim and truncate an error text so near-identical failures group together."""
    return message.strip()[:MAX_MESSAGE_LENGTH]


def most_common_message(messages: list[str]) -> str | None:
    counts = Counter(m for m in map(normalize_error_message, messages) if m)
    if not counts:
        return None
    # Counter.most_common keeps first-inserted order among ties
    return counts.most_common(1)[0][0]


class ErrorPatternDetector(PatternAnalyzer):
    """Reports tools with high failure rates, repeated error texts and recovery tools.

    A call counts as failed only when ``success is False``; unknown outcomes
    (``None``) are treated as successes.
    """

    name = "error-pattern"

    def analyze(self, transcript: Transcript, messages: list[Message]) -> list[Observation]:
        stats = self._collect_stats(messages)

        observations: list[Observation] = []
        observations.extend(self._error_rate_observations(stats, transcript))
        observations.extend(self._repeated_error_observations(messages, transcript))
        observations.extend(self._recovery_observations(messages, stats, transcript))
        return observations

    def _collect_stats(self, messages: list[Message]) -> dict[str, _ErrorStats]:
        stats: dict[str, _ErrorStats] = {}
        for message in messages:
            for use in message.tool_uses:
                stat = stats.setdefault(use.name, _ErrorStats())
                stat.total_calls += 1
                if use.success is False:
                    stat.error_count += 1
                    if use.result:
                        stat.error_messages.append(use.result)
        return stats

    def _error_rate_observations(
        self, stats: dict[str, _ErrorStats], transcript: Transcript
    ) -> list[Observation]:
        result = []
        for tool_name, stat in stats.items():
            if stat.error_count < MIN_ERROR_COUNT:
                continue
            error_rate = stat.error_count / stat.total_calls if stat.total_calls else 0.0
            if error_rate <= MIN_ERROR_RATE:
                continue

            metadata = {
                "tool_name": tool_name,
                "error_count": stat.error_count,
                "total_calls": stat.total_calls,
                "error_rate": error_rate,
            }
            common = most_common_message(stat.error_messages)
            if common:
                metadata["common_error_message"] = common

            percent = int(error_rate * 100 + 0.5)
            result.append(
                self.draft(
                    f'Tool "{tool_name}" fails {percent}% of the time '
                    f"({stat.error_count}/{stat.total_calls} calls)",
                    "pattern",
                    transcript,
                    metadata,
                )
            )
        return result

    def _repeated_error_observations(
        self, messages: list[Message], transcript: Transcript
    ) -> list[Observation]:
        frequencies: Counter = Counter()
        for message in messages:
            for use in message.tool_uses:
                if use.success is False and use.result:
                    normalized = normalize_error_message(use.result)
                    if normalized:
                        frequencies[normalized] += 1

        result = []
        for text, count in frequencies.items():
            if count < MIN_MESSAGE_FREQUENCY:
                continue
            result.append(
                self.draft(
                    f'Recurring error ({count}x): "{text}"',
                    "pattern",
                    transcript,
                    {
                        "tool_name": "unknown",
                        "error_count": count,
                        "total_calls": count,
                        "error_rate": 1.0,
                        "common_error_message": text,
                    },
                )
            )
        return result

    def _recovery_observations(
        self,
        messages: list[Message],
        stats: dict[str, _ErrorStats],
        transcript: Transcript,
    ) -> list[Observation]:
        # failed tool -> tools used first in the directly following message
        recoveries: dict[str, list[str]] = {}
        for current, following in zip(messages, messages[1:]):
            if not current.tool_uses or not following.tool_uses:
                continue
            for use in current.tool_uses:
                if use.success is False:
                    recoveries.setdefault(use.name, []).append(following.tool_uses[0].name)

        result = []
        for failed_tool, tools in recoveries.items():
            if len(tools) < MIN_ERROR_COUNT:
                continue
            counts = Counter(tools)
            dominant, dominant_count = counts.most_common(1)[0]
            if dominant_count < MIN_ERROR_COUNT:
                continue

            stat = stats.get(failed_tool)
            result.append(
                self.draft(
                    f'After "{failed_tool}" errors, typically uses "{dominant}" '
                    f"to recover ({dominant_count} times)",
                    "workflow",
                    transcript,
                    {
                        "tool_name": failed_tool,
                        "error_count": stat.error_count if stat else len(tools),
                        "total_calls": stat.total_calls if stat else len(tools),
                        "error_rate": stat.error_count / stat.total_calls if stat else 1.0,
                        "recovery_tools": list(counts),
                    },
                )
            )
        return result
