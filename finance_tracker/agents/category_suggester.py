"""
Category Suggester

Proposes the most likely category for a free-text transaction description.
The "AI" here is a deterministic heuristic scorer:

1. HISTORY: descriptions the user already confirmed, weighted double
2. KEYWORDS: substring hits against the catalog keyword table
3. AMOUNT: a numeral in the description nudges Housing or Food & Dining
4. FALLBACK: a handful of high-signal keywords, first rule wins
5. DEFAULT: the "Other" expense category

BOUNDARIES:
- The suggester NEVER persists anything and NEVER raises.
- It only learns from entries the caller records after the user
  accepts (or submits) a category.

Each session owns its own TransactionHistory so that users sharing a
process never see each other's learning signal.
"""

import re
from collections import deque
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional

import structlog

from finance_tracker.categories import (
    CATEGORY_KEYWORDS,
    EXPENSE_CATEGORIES,
    get_all_categories,
    get_category_by_id,
)
from finance_tracker.config import SuggesterSettings, get_settings
from finance_tracker.models.finance import (
    Category,
    CategorySuggestion,
    SuggestionSource,
    TransactionHistoryEntry,
)


logger = structlog.get_logger(__name__)


# Similarity scores
EXACT_MATCH_SIMILARITY = 1.0
CONTAINMENT_SIMILARITY = 0.8
MIN_TOKEN_LENGTH = 3

# Amount heuristics
_AMOUNT_PATTERN = re.compile(r"\$?\d+(\.\d{2})?")
HOUSING_CATEGORY_ID = "3"
FOOD_CATEGORY_ID = "1"
LARGE_ROUND_AMOUNT = Decimal("500")
ROUND_AMOUNT_STEP = Decimal("100")
LARGE_ROUND_AMOUNT_BOOST = 0.5
SMALL_AMOUNT = Decimal("20")
SMALL_AMOUNT_BOOST = 0.3

# Checked in order when no scored category wins; first hit returns.
FALLBACK_RULES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("food", "restaurant", "lunch", "dinner"), "1"),          # Food & Dining
    (("uber", "lyft", "taxi", "gas", "fuel"), "2"),           # Transportation
    (("rent", "mortgage", "home"), "3"),                       # Housing
    (("movie", "netflix", "spotify", "entertainment"), "4"),   # Entertainment
    (("salary", "paycheck", "wage"), "11"),                    # Salary
)
DEFAULT_CATEGORY: Category = EXPENSE_CATEGORIES[9]

FALLBACK_CONFIDENCE = 0.4
DEFAULT_CONFIDENCE = 0.1


def calculate_similarity(first: str, second: str) -> float:
    """
    Similarity between two descriptions in [0, 1].

    Exact (case-insensitive) match scores 1, containment 0.8. Otherwise
    the token-overlap ratio: each token of `first` with at least three
    characters counts once if any token of `second` (also three or more
    characters) equals it or contains/is contained by it. The count is
    divided by the larger raw token count of the two strings.
    """
    s1 = first.lower()
    s2 = second.lower()

    if s1 == s2:
        return EXACT_MATCH_SIMILARITY
    if s2 in s1 or s1 in s2:
        return CONTAINMENT_SIMILARITY

    words1 = re.split(r"\s+", s1)
    words2 = re.split(r"\s+", s2)

    match_count = 0
    for word1 in words1:
        if len(word1) < MIN_TOKEN_LENGTH:
            continue
        for word2 in words2:
            if len(word2) < MIN_TOKEN_LENGTH:
                continue
            if word1 == word2 or word2 in word1 or word1 in word2:
                match_count += 1
                break

    return match_count / max(len(words1), len(words2))


class TransactionHistory:
    """
    Confirmed description → category pairs for one user session.

    Unbounded by default. With a limit only the most recent entries
    are kept, oldest evicted first.
    """

    def __init__(
        self,
        entries: Optional[Iterable[TransactionHistoryEntry]] = None,
        limit: Optional[int] = None,
    ):
        self._entries: deque[TransactionHistoryEntry] = deque(maxlen=limit)
        for entry in entries or ():
            self.record(entry.description, entry.category_id)

    def record(self, description: str, category_id: str) -> bool:
        """
        Append a confirmed pair.

        Returns False (and records nothing) for blank descriptions or
        category ids the catalog does not know.
        """
        if not description.strip():
            return False
        if get_category_by_id(category_id) is None:
            logger.warning(
                "history_entry_ignored",
                reason="unknown_category",
                category_id=category_id,
            )
            return False

        self._entries.append(
            TransactionHistoryEntry(description=description, category_id=category_id)
        )
        return True

    @property
    def entries(self) -> list[TransactionHistoryEntry]:
        return list(self._entries)

    @property
    def limit(self) -> Optional[int]:
        return self._entries.maxlen

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)


class CategorySuggester:
    """
    Heuristic category scorer.

    RESPONSIBILITIES:
    - Score every category for a description
    - Return the best category, always (falls back to "Other")
    - Report a deterministic confidence derived from the score margin

    BOUNDARIES:
    - NEVER records history on its own; callers do that on acceptance
    """

    def __init__(
        self,
        history: Optional[TransactionHistory] = None,
        settings: Optional[SuggesterSettings] = None,
    ):
        self._settings = settings or get_settings().suggester
        self._history = (
            history
            if history is not None
            else TransactionHistory(limit=self._settings.history_limit)
        )

    @property
    def history(self) -> TransactionHistory:
        return self._history

    def record(self, description: str, category_id: str) -> bool:
        """Learn from a confirmed description → category pair."""
        return self._history.record(description, category_id)

    def suggest(self, description: str) -> Category:
        """Most likely category for the description."""
        return self.suggest_with_confidence(description).category

    def suggest_with_confidence(self, description: str) -> CategorySuggestion:
        """
        Score the description and explain the result.

        Confidence:
        - scored winner: 0.5 + 0.5 * (best - runner_up) / best
        - fallback rule: 0.4
        - default "Other": 0.1
        """
        lower_desc = description.lower()
        scores = self.score(description)

        best_id, best_score, runner_up = self._pick_winner(scores)

        if best_id is not None and best_score > self._settings.min_winning_score:
            category = get_category_by_id(best_id)
            confidence = 0.5 + 0.5 * (best_score - runner_up) / best_score
            return CategorySuggestion(
                category=category,
                confidence=round(min(confidence, 1.0), 4),
                source=SuggestionSource.SCORED,
                score=best_score,
                reasoning=(
                    f"{category.name} scored {best_score:.2f} "
                    f"(next best {runner_up:.2f})"
                ),
            )

        for keywords, category_id in FALLBACK_RULES:
            hit = next((kw for kw in keywords if kw in lower_desc), None)
            if hit:
                category = get_category_by_id(category_id)
                return CategorySuggestion(
                    category=category,
                    confidence=FALLBACK_CONFIDENCE,
                    source=SuggestionSource.FALLBACK_RULE,
                    reasoning=f"Description mentions '{hit}'",
                )

        return CategorySuggestion(
            category=DEFAULT_CATEGORY,
            confidence=DEFAULT_CONFIDENCE,
            source=SuggestionSource.DEFAULT,
            reasoning="No signal found - please select manually",
        )

    def score(self, description: str) -> dict[str, float]:
        """
        Accumulated score per category id.

        Only categories with a non-zero contribution appear.
        """
        lower_desc = description.lower()
        scores: dict[str, float] = {}

        # A blank query trivially "contains" every history description.
        if lower_desc.strip():
            threshold = self._settings.history_similarity_threshold
            weight = self._settings.history_weight
            for entry in self._history:
                similarity = calculate_similarity(entry.description, description)
                if similarity > threshold:
                    scores[entry.category_id] = (
                        scores.get(entry.category_id, 0.0) + similarity * weight
                    )

        for category_id, keywords in CATEGORY_KEYWORDS.items():
            for keyword in keywords:
                if keyword in lower_desc:
                    scores[category_id] = scores.get(category_id, 0.0) + 1

        amount = _extract_amount(lower_desc)
        if amount is not None:
            if amount > LARGE_ROUND_AMOUNT and _is_round(amount):
                scores[HOUSING_CATEGORY_ID] = (
                    scores.get(HOUSING_CATEGORY_ID, 0.0) + LARGE_ROUND_AMOUNT_BOOST
                )
            if amount < SMALL_AMOUNT:
                scores[FOOD_CATEGORY_ID] = (
                    scores.get(FOOD_CATEGORY_ID, 0.0) + SMALL_AMOUNT_BOOST
                )

        return scores

    @staticmethod
    def _pick_winner(
        scores: dict[str, float],
    ) -> tuple[Optional[str], float, float]:
        """
        (best_id, best_score, runner_up_score).

        Strictly highest wins; ties go to the earlier catalog entry.
        """
        best_id: Optional[str] = None
        best_score = 0.0
        runner_up = 0.0

        for category in get_all_categories():
            score = scores.get(category.id, 0.0)
            if score > best_score:
                runner_up = best_score
                best_id, best_score = category.id, score
            elif score > runner_up:
                runner_up = score

        return best_id, best_score, runner_up


def _extract_amount(lower_desc: str) -> Optional[Decimal]:
    match = _AMOUNT_PATTERN.search(lower_desc)
    if not match:
        return None
    try:
        return Decimal(match.group(0).lstrip("$"))
    except InvalidOperation:
        return None


def _is_round(amount: Decimal) -> bool:
    # int arithmetic; Decimal % is bound by the context precision.
    if amount != amount.to_integral_value():
        return False
    return int(amount) % int(ROUND_AMOUNT_STEP) == 0
