"""
Pet analyzer.

Derives life stage, chewing strength and weight status from a breed and an
exact age in months, using the breed growth table
({breed: {month: {lifeStage, weightAvgKg, underweightKg, overweightKg, biteForceN, ...}}}).
Breed names may be given in Korean; they are mapped through the breed name map.
"""
import json
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel

from petrec.core.config import get_config
from petrec.core.state import AgeFit, JawHardness, WeightStatus
from petrec.utils.logger import get_logger

logger = get_logger("profile.pet_analyzer")

# Bite force thresholds in Newtons
LOW_BITE_FORCE_N = 200
MEDIUM_BITE_FORCE_N = 450

# Age-only estimate when the month is not in the table
PUPPY_MAX_MONTHS = 12
SENIOR_MIN_MONTHS = 84


class PetAnalysisResult(BaseModel):
    age_fit: AgeFit
    jaw_hardness_fit: Optional[JawHardness] = None
    weight_status: Optional[WeightStatus] = None


class BreedTable:
    """Month-exact breed growth data plus a Korean -> English name map."""

    def __init__(self, data: Dict[str, Dict[str, Dict[str, Any]]], name_map: Optional[Dict[str, str]] = None):
        self.data = data
        self.name_map = name_map or {}

    @classmethod
    def from_files(cls, breed_data_path: str, name_map_path: Optional[str] = None) -> "BreedTable":
        data = _load_json(breed_data_path, "breed data")
        name_map = _load_json(name_map_path, "breed name map") if name_map_path else {}
        logger.info(f"Loaded breed table: {len(data)} breeds, {len(name_map)} name mappings")
        return cls(data, name_map)

    def normalize_breed(self, breed: str) -> Optional[str]:
        """Return the table's breed name for `breed` (English or Korean), or None."""
        name = (breed or "").strip()
        if name in self.data:
            return name
        mapped = self.name_map.get(name) or self.name_map.get(name.lower())
        if mapped and mapped in self.data:
            return mapped
        return None

    def month_stats(self, breed: str, month: int) -> Optional[Dict[str, Any]]:
        return self.data.get(breed, {}).get(str(month))


def _load_json(path: str, label: str) -> Dict[str, Any]:
    file_path = Path(path)
    if not file_path.exists():
        logger.warning(f"No {label} at {file_path}; pet analysis will find no breeds")
        return {}
    with open(file_path, "r", encoding="utf-8") as f:
        return json.load(f)


def bite_force_to_jaw_hardness(bite_force_n: float) -> str:
    if bite_force_n < LOW_BITE_FORCE_N:
        return "low"
    if bite_force_n < MEDIUM_BITE_FORCE_N:
        return "medium"
    return "high"


def life_stage_to_age_fit(life_stage: str) -> str:
    """Map table values like "Kitten/Puppy", "Adult", "Senior"."""
    lower = life_stage.lower()
    if "puppy" in lower or "kitten" in lower:
        return "puppy"
    if "senior" in lower:
        return "senior"
    return "adult"


def weight_status(current_weight: float, underweight_kg: float, overweight_kg: float) -> str:
    if current_weight < underweight_kg:
        return "underweight"
    if current_weight > overweight_kg:
        return "overweight"
    return "normal"


_breed_table: Optional[BreedTable] = None


def get_breed_table() -> BreedTable:
    """Breed table from the configured paths, loaded on first use."""
    global _breed_table
    if _breed_table is None:
        config = get_config()
        _breed_table = BreedTable.from_files(config.breed_data_path, config.breed_name_map_path)
    return _breed_table


def analyze_pet(
    breed: str,
    months_old: int,
    current_weight: Optional[float] = None,
    table: Optional[BreedTable] = None,
) -> Optional[PetAnalysisResult]:
    """
    Analyze a pet from breed and age.

    Args:
        breed: Breed name, English or Korean
        months_old: Age in months
        current_weight: Current weight in kg, if known
        table: Breed table; the configured one when omitted

    Returns:
        PetAnalysisResult, or None when the breed is unknown (mixed breed, typo)
    """
    table = table or get_breed_table()
    name = table.normalize_breed(breed)
    if name is None:
        logger.info(f"Breed '{breed}' not in breed table")
        return None

    stats = table.month_stats(name, months_old)
    if stats is None:
        if months_old <= PUPPY_MAX_MONTHS:
            age_fit = "puppy"
        elif months_old >= SENIOR_MIN_MONTHS:
            age_fit = "senior"
        else:
            age_fit = "adult"
        logger.info(f"No month {months_old} data for {name}; age-only estimate {age_fit}")
        return PetAnalysisResult(age_fit=age_fit)

    status = None
    if current_weight:
        status = weight_status(current_weight, stats["underweightKg"], stats["overweightKg"])

    result = PetAnalysisResult(
        age_fit=life_stage_to_age_fit(stats["lifeStage"]),
        jaw_hardness_fit=bite_force_to_jaw_hardness(stats["biteForceN"]),
        weight_status=status,
    )
    logger.info(f"Analyzed {name} @ {months_old} months: {result.model_dump()}")
    return result
