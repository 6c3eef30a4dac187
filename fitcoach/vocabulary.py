"""
EXERCISEDB VOCABULARY
=====================

The fixed muscle / body part / equipment strings ExerciseDB accepts, plus
synonym maps from everyday wording to those strings. validate_terms() is the
single entry point: lower-case and trim, map synonyms (one synonym may expand
to several terms), drop anything outside the allowed set, de-duplicate.
"""

from typing import Dict, Iterable, List, Optional, Tuple

AVAILABLE_MUSCLES = frozenset([
    "shins", "hands", "sternocleidomastoid", "soleus", "inner thighs", "lower abs",
    "grip muscles", "abdominals", "wrist extensors", "wrist flexors", "latissimus dorsi",
    "upper chest", "rotator cuff", "wrists", "groin", "brachialis", "deltoids", "feet",
    "ankles", "trapezius", "rear deltoids", "chest", "quadriceps", "back", "core",
    "shoulders", "ankle stabilizers", "rhomboids", "obliques", "lower back", "hip flexors",
    "levator scapulae", "abductors", "serratus anterior", "traps", "forearms", "delts",
    "biceps", "upper back", "spine", "cardiovascular system", "triceps", "adductors",
    "hamstrings", "glutes", "pectorals", "calves", "lats", "quads", "abs",
])

AVAILABLE_EQUIPMENT = frozenset([
    "stepmill machine", "elliptical machine", "trap bar", "tire", "stationary bike",
    "wheel roller", "smith machine", "hammer", "skierg machine", "roller",
    "resistance band", "bosu ball", "weighted", "olympic barbell", "kettlebell",
    "upper body ergometer", "sled machine", "ez barbell", "dumbbell", "rope", "barbell",
    "band", "stability ball", "medicine ball", "assisted", "leverage machine", "cable",
    "body weight",
])

AVAILABLE_BODY_PARTS = frozenset([
    "neck", "lower arms", "shoulders", "cardio", "upper arms", "chest", "lower legs",
    "back", "upper legs", "waist",
])

# Synonyms only; canonical terms pass through unchanged.
MUSCLE_SYNONYMS: Dict[str, List[str]] = {
    "pecs": ["pectorals"],
    "arms": ["biceps", "triceps"],
    "deltoid": ["deltoids"],
    "lat": ["lats"],
    "abdominal": ["abdominals"],
    "six pack": ["abs"],
    "legs": ["quadriceps", "hamstrings", "glutes", "calves"],
    "leg day": ["quadriceps", "hamstrings", "glutes", "calves"],
    "leg": ["quadriceps", "hamstrings", "glutes", "calves"],
    "upper body": ["chest", "biceps", "triceps", "deltoids"],
    "upper-body": ["chest", "biceps", "triceps", "deltoids"],
    "butt": ["glutes"],
    "glute": ["glutes"],
    "hamstring": ["hamstrings"],
    "calf": ["calves"],
    "quad": ["quads"],
    "bicep": ["biceps"],
    "tricep": ["triceps"],
    "forearm": ["forearms"],
    "oblique": ["obliques"],
    "trap": ["traps"],
    "grip": ["grip muscles"],
    "cardio": ["cardiovascular system"],
}

EQUIPMENT_SYNONYMS: Dict[str, List[str]] = {
    "dumbbells": ["dumbbell"],
    "db": ["dumbbell"],
    "barbells": ["barbell"],
    "kettlebells": ["kettlebell"],
    "ez bar": ["ez barbell"],
    "cables": ["cable"],
    "cable machine": ["cable"],
    "smith": ["smith machine"],
    "machine": ["leverage machine"],
    "bodyweight": ["body weight"],
    "body-weight": ["body weight"],
    "no equipment": ["body weight"],
    "none": ["body weight"],
    "bands": ["resistance band"],
    "resistance bands": ["resistance band"],
    "exercise ball": ["stability ball"],
    "swiss ball": ["stability ball"],
    "medicine balls": ["medicine ball"],
    "bike": ["stationary bike"],
    "elliptical": ["elliptical machine"],
    "stepmill": ["stepmill machine"],
    "ski erg": ["skierg machine"],
    "foam roller": ["roller"],
}

BODY_PART_SYNONYMS: Dict[str, List[str]] = {
    "arms": ["upper arms"],
    "biceps": ["upper arms"],
    "triceps": ["upper arms"],
    "forearms": ["lower arms"],
    "legs": ["upper legs"],
    "thighs": ["upper legs"],
    "calves": ["lower legs"],
    "core": ["waist"],
    "abs": ["waist"],
    "stomach": ["waist"],
    "upper body": ["chest", "upper arms", "shoulders"],
    "upper-body": ["chest", "upper arms", "shoulders"],
    "lower body": ["upper legs", "lower legs"],
    "lower-body": ["upper legs", "lower legs"],
}

CATEGORIES: Dict[str, Tuple[frozenset, Dict[str, List[str]]]] = {
    "targetMuscles": (AVAILABLE_MUSCLES, MUSCLE_SYNONYMS),
    "bodyParts": (AVAILABLE_BODY_PARTS, BODY_PART_SYNONYMS),
    "equipment": (AVAILABLE_EQUIPMENT, EQUIPMENT_SYNONYMS),
}


def validate_terms(terms: Optional[Iterable[str]], category: str) -> Tuple[List[str], List[str]]:
    """
    Map caller terms into the ExerciseDB vocabulary for one category.

    Returns (accepted, dropped). accepted keeps first-seen order with no
    duplicates; dropped lists the normalized input terms that matched nothing.
    """
    allowed, synonyms = CATEGORIES[category]
    accepted: List[str] = []
    dropped: List[str] = []

    for raw in terms or []:
        if not isinstance(raw, str):
            continue
        term = " ".join(raw.lower().split())
        if not term:
            continue
        candidates = [term] if term in allowed else synonyms.get(term, [term])
        matched = [c for c in candidates if c in allowed]
        if not matched:
            if term not in dropped:
                dropped.append(term)
            continue
        for value in matched:
            if value not in accepted:
                accepted.append(value)

    return accepted, dropped


def validate_muscles(terms: Optional[Iterable[str]]) -> List[str]:
    return validate_terms(terms, "targetMuscles")[0]


def validate_body_parts(terms: Optional[Iterable[str]]) -> List[str]:
    return validate_terms(terms, "bodyParts")[0]


def validate_equipment(terms: Optional[Iterable[str]]) -> List[str]:
    return validate_terms(terms, "equipment")[0]
