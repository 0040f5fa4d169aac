"""
Constraint normalizer.

Maps the raw words the language model extracts (age, chewing strength,
allergens, budget, situational wishes) onto canonical hard-filter values
and soft preference tags. Anything not recognized is left out of the
update, which the merge engine treats as "no change".
"""
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

from petrec.core.state import ConversationState
from petrec.llm.schemas import ExtractedSignals
from petrec.utils.logger import get_logger

logger = get_logger("parsing.constraint_normalizer")


# field -> canonical value -> words that mean it (English + Korean)
DEFAULT_SYNONYMS: Dict[str, Dict[Any, List[str]]] = {
    "age": {
        "puppy": ["puppy", "puppies", "kitten", "junior", "young", "baby", "강아지", "퍼피", "아기", "어린"],
        "adult": ["adult", "grown", "grown-up", "성견", "어덜트", "성묘"],
        "senior": ["senior", "old dog", "older dog", "elderly", "aged", "노견", "시니어", "나이 많은", "나이가 많"],
    },
    "jaw_strength": {
        "low": ["low", "weak", "soft", "gentle", "sensitive teeth", "missing teeth", "bad teeth",
                "약한", "약함", "약해", "부드러운", "이가 안 좋"],
        "medium": ["medium", "moderate", "average", "normal", "보통", "중간"],
        "high": ["high", "strong", "hard", "powerful", "heavy chewer", "power chewer", "aggressive chewer",
                 "강한", "강함", "딱딱한", "튼튼한"],
    },
    "weight_status": {
        "underweight": ["underweight", "skinny", "thin", "too light", "저체중", "마른", "말랐"],
        "normal": ["normal", "healthy weight", "ideal weight", "정상", "적정"],
        "overweight": ["overweight", "chubby", "fat", "obese", "heavy", "과체중", "비만", "통통", "살이 쪘"],
    },
    "crumb": {
        "low": ["low", "no crumbs", "few crumbs", "not messy", "no mess", "clean", "tidy",
                "부스러기 없", "부스러기 적", "깔끔", "안 지저분", "지저분하지 않"],
        "medium": ["medium", "some crumbs", "a few crumbs is fine", "보통"],
        "high": ["high", "crumbly", "lots of crumbs", "messy is fine", "messy ok", "부스러기 많아도", "지저분해도"],
    },
    "noise": {
        "low": ["low", "quiet", "silent", "not noisy", "not loud", "no noise", "조용", "소음 없", "시끄럽지 않"],
        "medium": ["medium", "a little noise", "보통"],
        "high": ["high", "noisy", "loud", "crunchy", "시끄러워도", "바삭"],
    },
    "storage": {
        True: ["room temperature", "shelf stable", "shelf-stable", "no fridge", "without a fridge",
               "portable", "on the go", "상온", "휴대", "냉장 안"],
        False: ["refrigerated", "refrigerate", "fridge", "frozen", "chilled", "냉장", "냉동"],
    },
    "category": {
        "간식": ["snack", "snacks", "treat", "treats", "jerky", "chew", "간식", "져키"],
        "케이크": ["cake", "birthday cake", "케이크"],
        "밀키트": ["meal kit", "meal-kit", "밀키트"],
    },
    "allergens": {
        "chicken": ["chicken", "poultry", "닭", "닭고기"],
        "beef": ["beef", "cow", "소고기", "쇠고기"],
        "pork": ["pork", "pig", "돼지", "돼지고기"],
        "duck": ["duck", "오리", "오리고기"],
        "lamb": ["lamb", "mutton", "양고기"],
        "turkey": ["turkey", "칠면조"],
        "salmon": ["salmon", "연어"],
        "fish": ["fish", "tuna", "cod", "whitefish", "생선", "참치", "대구"],
        "egg": ["egg", "eggs", "yolk", "계란", "달걀", "난황"],
        "dairy": ["dairy", "milk", "cheese", "lactose", "yogurt", "우유", "치즈", "유제품"],
        "wheat": ["wheat", "gluten", "flour", "밀", "밀가루"],
        "corn": ["corn", "maize", "옥수수"],
        "soy": ["soy", "soybean", "soya", "콩", "대두"],
    },
}

# ExtractedSignals field -> synonym table
_SIGNAL_TABLES = {
    "age": "age",
    "jaw_strength": "jaw_strength",
    "weight_status": "weight_status",
    "crumb_preference": "crumb",
    "noise_preference": "noise",
    "storage": "storage",
    "category": "category",
}

# missing_info key -> hard filter it fills
INFO_KEY_FILTERS = {
    "age_fit": "age_fit",
    "jaw_hardness_fit": "jaw_hardness_fit",
    "crumb_level": "crumb_level",
    "noise_level": "noise_level",
    "shelf_stable": "shelf_stable",
}


def _is_ascii(term: str) -> bool:
    return all(ord(ch) < 128 for ch in term)


class SynonymTable:
    """Phrase lookup with longest-match-first scanning."""

    def __init__(self, overrides: Optional[Mapping[str, Mapping[str, Any]]] = None):
        self.tables: Dict[str, Dict[Any, List[str]]] = {
            name: {canonical: list(words) for canonical, words in table.items()}
            for name, table in DEFAULT_SYNONYMS.items()
        }
        for name, entries in (overrides or {}).items():
            table = self.tables.setdefault(name, {})
            for word, canonical in entries.items():
                if name != "allergens" and canonical not in table:
                    logger.warning(f"Ignoring synonym '{word}' -> '{canonical}': not a valid {name} value")
                    continue
                table.setdefault(canonical, []).append(word.lower())

    def vocabulary(self, name: str) -> Set[Any]:
        return set(self.tables.get(name, {}))

    def lookup_all(self, name: str, text: Optional[str]) -> List[Any]:
        """
        Return every canonical value mentioned in `text`, in order of first mention.

        Longer phrases are matched first and consumed, so "not noisy" is not
        also read as "noisy".
        """
        if not text:
            return []
        remaining = text.lower().strip()
        terms = [
            (word, canonical)
            for canonical, words in self.tables.get(name, {}).items()
            for word in words
        ]
        terms.sort(key=lambda t: len(t[0]), reverse=True)

        hits = []
        for word, canonical in terms:
            if _is_ascii(word):
                pattern = re.compile(rf"\b{re.escape(word)}\b")
            else:
                pattern = re.compile(re.escape(word))
            match = pattern.search(remaining)
            if match is None:
                continue
            hits.append((match.start(), canonical))
            remaining = pattern.sub(" ", remaining)

        ordered = []
        for _, canonical in sorted(hits, key=lambda h: h[0]):
            if canonical not in ordered:
                ordered.append(canonical)
        return ordered

    def lookup(self, name: str, text: Optional[str]) -> Optional[Any]:
        """Return the single canonical value for `text`, or None if unknown or ambiguous."""
        values = self.lookup_all(name, text)
        if len(values) == 1:
            return values[0]
        if len(values) > 1:
            logger.info(f"Ambiguous {name} signal '{text}' -> {values}; leaving unknown")
        return None


def normalize_allergens(mentions: Iterable[str], table: SynonymTable) -> List[str]:
    """
    Map allergen mentions to canonical names.

    The lower-cased mention is kept next to its canonical name unless the
    canonical name already occurs in it, so "tuna" gives ["fish", "tuna"]
    and "Eggs" gives ["egg"]. Unknown mentions are kept lower-cased.
    """
    normalized: List[str] = []
    for mention in mentions:
        if not mention or not mention.strip():
            continue
        term = mention.strip().lower()
        canonical = table.lookup_all("allergens", mention)
        if not canonical:
            logger.warning(f"Allergen '{mention}' is outside the canonical vocabulary; keeping '{term}'")
        values = list(canonical)
        if not any(str(value) in term for value in canonical):
            values.append(term)
        for value in values:
            if value not in normalized:
                normalized.append(value)
    return normalized


# Umbrella allergen -> narrower canonical allergens it covers
ALLERGEN_FAMILIES: Dict[str, List[str]] = {
    "fish": ["salmon"],
}


def allergen_match_terms(terms: Iterable[str]) -> List[str]:
    """
    Expand excluded allergens into every word a product field may use for them.

    A canonical allergen brings its synonyms and those of the narrower
    allergens it covers ("fish" also matches "salmon", "tuna", "참치").
    Other terms match as themselves.
    """
    words = DEFAULT_SYNONYMS["allergens"]
    expanded: List[str] = []
    for term in terms:
        if not term:
            continue
        term = term.strip().lower()
        group = [term]
        for canonical in [term] + ALLERGEN_FAMILIES.get(term, []):
            group.append(canonical)
            group.extend(words.get(canonical, []))
        for word in group:
            if word not in expanded:
                expanded.append(word)
    return expanded


def _union(existing: Iterable[str], new: Iterable[str]) -> List[str]:
    result = list(existing)
    for item in new:
        if item not in result:
            result.append(item)
    return result


def normalize_signals(
    signals: ExtractedSignals,
    state: ConversationState,
    synonyms: Optional[SynonymTable] = None,
) -> Dict[str, Any]:
    """
    Turn extracted signals into a partial state update.

    Args:
        signals: Raw extraction for the latest message
        state: Current state (list fields are extended, not replaced)
        synonyms: Synonym table; the built-in table when omitted

    Returns:
        Partial dict for `apply_update`, touching only `profile` and `filters`
    """
    table = synonyms or SynonymTable()
    profile: Dict[str, Any] = {}
    hard: Dict[str, Any] = {}

    values = {
        field: table.lookup(table_name, getattr(signals, field))
        for field, table_name in _SIGNAL_TABLES.items()
    }

    if values["age"] is not None:
        profile["age_fit"] = values["age"]
        hard["age_fit"] = values["age"]
    if values["jaw_strength"] is not None:
        profile["jaw_hardness_fit"] = values["jaw_strength"]
        hard["jaw_hardness_fit"] = values["jaw_strength"]
    if values["weight_status"] is not None:
        profile["weight_status"] = values["weight_status"]
    if values["crumb_preference"] is not None:
        hard["crumb_level"] = values["crumb_preference"]
    if values["noise_preference"] is not None:
        hard["noise_level"] = values["noise_preference"]
    if values["storage"] is not None:
        hard["shelf_stable"] = values["storage"]
    if values["category"] is not None:
        hard["category"] = values["category"]

    if signals.max_budget is not None and signals.max_budget > 0:
        hard["price_lte"] = float(signals.max_budget)

    allergens = normalize_allergens(signals.allergens, table)
    if allergens:
        combined = _union(state.profile.allergens_exclude, allergens)
        if combined != state.profile.allergens_exclude:
            profile["allergens_exclude"] = combined
            hard["allergens_exclude"] = combined

    update: Dict[str, Any] = {}
    if profile:
        update["profile"] = profile

    filters: Dict[str, Any] = {}
    if hard:
        filters["hard_filters"] = hard
    preferences = [p.strip() for p in signals.preferences if p and p.strip()]
    if preferences:
        filters["soft_preferences"] = list(state.filters.soft_preferences) + preferences
    if filters:
        update["filters"] = filters

    logger.debug(f"Normalized signals {signals.model_dump(exclude_defaults=True)} -> {update}")
    return update


def resolved_info_keys(signals: ExtractedSignals, state: ConversationState) -> List[str]:
    """
    Return the pending missing_info keys the latest turn resolved.

    `state` is the state after the turn's update was merged. "context" is
    resolved by context resolution, never here.
    """
    answered = set(signals.answered_info)
    hard = state.filters.hard_filters
    resolved = []
    for key in state.session.missing_info:
        if key == "context":
            continue
        if key in answered:
            resolved.append(key)
        elif key in INFO_KEY_FILTERS and getattr(hard, INFO_KEY_FILTERS[key]) is not None:
            resolved.append(key)
        elif key == "ask_soft_prefs" and signals.preferences:
            resolved.append(key)
    return resolved


def analysis_to_update(result: Mapping[str, Any]) -> Dict[str, Any]:
    """Convert a pet-analysis result into a partial update for profile and hard filters."""
    profile = {}
    hard = {}
    for key in ("age_fit", "jaw_hardness_fit", "weight_status"):
        value = result.get(key)
        if value is None:
            continue
        profile[key] = value
        if key != "weight_status":
            hard[key] = value

    update: Dict[str, Any] = {}
    if profile:
        update["profile"] = profile
    if hard:
        update["filters"] = {"hard_filters": hard}
    return update
