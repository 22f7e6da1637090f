# Copyright 2025 Roger Cibrian
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Progress estimation from packaging engine output.

The engine does not report progress, so progress is inferred from the
wording of its log. Each output chunk is lowercased and checked against an
ordered rule table; the first rule whose substrings all occur gives the
chunk's threshold. Session progress only ever moves up.

| Rule                     | Threshold |
|--------------------------|-----------|
| mounting                 | 0.20      |
| extracting               | 0.20      |
| expanding                | 0.30      |
| copying                  | 0.40      |
| preparing package        | 0.50      |
| creating + script        | 0.60      |
| pkgbuild                 | 0.70      |
| productbuild             | 0.80      |
| signing                  | 0.85      |
| completed successfully   | 0.95      |

SPAWNED_PROGRESS is applied right after the engine starts and
COMPLETED_PROGRESS only when it exits with code 0, so no output line can
push a build to 100%.
"""

from __future__ import annotations

from dataclasses import dataclass

SPAWNED_PROGRESS = 0.1
COMPLETED_PROGRESS = 1.0


@dataclass(frozen=True)
class ProgressRule:
    """Raise progress to ``threshold`` when every needle is in the chunk.

    Attributes:
        needles: Lowercase substrings that must all be present.
        threshold: Progress fraction the rule maps to.
    """

    needles: tuple[str, ...]
    threshold: float

    def matches(self, lowered: str) -> bool:
        return all(needle in lowered for needle in self.needles)


PROGRESS_RULES: tuple[ProgressRule, ...] = (
    ProgressRule(("mounting",), 0.2),
    ProgressRule(("extracting",), 0.2),
    ProgressRule(("expanding",), 0.3),
    ProgressRule(("copying",), 0.4),
    ProgressRule(("preparing package",), 0.5),
    ProgressRule(("creating", "script"), 0.6),
    ProgressRule(("pkgbuild",), 0.7),
    ProgressRule(("productbuild",), 0.8),
    ProgressRule(("signing",), 0.85),
    ProgressRule(("completed successfully",), 0.95),
)


def estimate_progress(
    text: str, rules: tuple[ProgressRule, ...] = PROGRESS_RULES
) -> float | None:
    """Return the threshold of the first rule matching ``text``, or None."""
    lowered = text.lower()
    for rule in rules:
        if rule.matches(lowered):
            return rule.threshold
    return None


def advance_progress(
    current: float, text: str, rules: tuple[ProgressRule, ...] = PROGRESS_RULES
) -> float:
    """Return the new progress after seeing ``text``; never lower than current."""
    threshold = estimate_progress(text, rules)
    if threshold is not None and threshold > current:
        return threshold
    return current
