"""Questionnaire scoring, severity bands, comparisons, streaks and achievements."""
from dataclasses import dataclass
from datetime import date, timedelta

GAD7 = "gad7"
PHQ9 = "phq9"
PSS = "pss"
WELLNESS = "wellness"
SELFESTEEM = "selfesteem"
TEST_TYPES = (GAD7, PHQ9, PSS, WELLNESS, SELFESTEEM)

# Lower totals mean fewer symptoms on these instruments
LOWER_IS_BETTER = frozenset({GAD7, PHQ9, PSS})

# test_type -> (question count or None for free length, max answer value)
ANSWER_RULES = {
    GAD7: (7, 3),
    PHQ9: (9, 3),
    PSS: (10, 4),
    WELLNESS: (None, 4),
    SELFESTEEM: (None, 4),
}

# Severity bands: (low, high, level, severity label); inclusive ranges
GAD7_BANDS = [
    (0, 4, "minimal", "Mínima"),
    (5, 9, "mild", "Leve"),
    (10, 14, "moderate", "Moderada"),
    (15, 21, "severe", "Severa"),
]

PHQ9_BANDS = [
    (0, 4, "minimal", "Mínima"),
    (5, 9, "mild", "Leve"),
    (10, 14, "moderate", "Moderada"),
    (15, 19, "moderately_severe", "Moderadamente severa"),
    (20, 27, "severe", "Severa"),
]

PSS_BANDS = [
    (0, 13, "low", "Bajo"),
    (14, 26, "medium", "Moderado"),
    (27, 40, "high", "Alto"),
]

# Minimum percentage of the max score per level; higher is better
PERCENT_LEVELS = [
    (80, "high", "Alto"),
    (60, "medium", "Medio"),
    (0, "low", "Bajo"),
]

BANDS_BY_TEST = {GAD7: GAD7_BANDS, PHQ9: PHQ9_BANDS, PSS: PSS_BANDS}

# (test_type, level) -> (description, recommendations, risk level)
INTERPRETATIONS = {
    (GAD7, "minimal"): ("Ansiedad mínima", ["Mantén tus hábitos saludables", "Continúa con el seguimiento regular"], "low"),
    (GAD7, "mild"): ("Ansiedad leve", ["Practica técnicas de relajación", "Considera ejercicios de respiración"], "low"),
    (GAD7, "moderate"): ("Ansiedad moderada", ["Practica mindfulness diariamente", "Considera buscar apoyo profesional"], "medium"),
    (GAD7, "severe"): ("Ansiedad severa", ["Busca ayuda profesional inmediatamente", "Considera terapia cognitivo-conductual"], "high"),
    (PHQ9, "minimal"): ("Depresión mínima", ["Mantén actividades que disfrutes", "Continúa con el seguimiento"], "low"),
    (PHQ9, "mild"): ("Depresión leve", ["Mantén rutinas saludables", "Considera actividades sociales"], "low"),
    (PHQ9, "moderate"): ("Depresión moderada", ["Busca apoyo profesional", "Considera terapia"], "medium"),
    (PHQ9, "moderately_severe"): ("Depresión moderadamente severa", ["Busca ayuda profesional urgente", "Habla con tu médico sobre opciones de tratamiento"], "high"),
    (PHQ9, "severe"): ("Depresión severa", ["Busca ayuda profesional inmediatamente", "Contacta con una línea de crisis si lo necesitas"], "high"),
    (PSS, "low"): ("Estrés bajo", ["Mantén tus estrategias actuales", "Continúa con el bienestar"], "low"),
    (PSS, "medium"): ("Estrés moderado", ["Practica técnicas de relajación", "Mantén rutinas saludables"], "medium"),
    (PSS, "high"): ("Estrés alto", ["Busca técnicas de manejo del estrés", "Considera apoyo profesional"], "high"),
    (WELLNESS, "high"): ("Excelente bienestar general", ["Mantén tus hábitos saludables", "Comparte tus estrategias con otros"], "low"),
    (WELLNESS, "medium"): ("Buen bienestar general", ["Continúa con tus actividades positivas", "Considera nuevas estrategias de bienestar"], "low"),
    (WELLNESS, "low"): ("Bienestar general mejorable", ["Implementa rutinas de autocuidado", "Considera buscar apoyo profesional"], "medium"),
    (SELFESTEEM, "high"): ("Autoestima alta", ["Mantén tu confianza", "Ayuda a otros a desarrollar su autoestima"], "low"),
    (SELFESTEEM, "medium"): ("Autoestima moderada", ["Practica la autocompasión", "Celebra tus logros"], "low"),
    (SELFESTEEM, "low"): ("Autoestima baja", ["Practica afirmaciones positivas", "Considera terapia para trabajar la autoestima"], "medium"),
}

QUESTIONNAIRES = {
    GAD7: {
        "title": "Test GAD-7",
        "description": "Evaluación rápida de ansiedad generalizada con 7 preguntas",
        "duration": "3-5 minutos",
    },
    PHQ9: {
        "title": "Test PHQ-9",
        "description": "Cuestionario de salud del paciente para síntomas depresivos",
        "duration": "5 minutos",
    },
    PSS: {
        "title": "Escala de Estrés Percibido",
        "description": "Mide cuán impredecible e incontrolable percibes tu vida",
        "duration": "5 minutos",
    },
    WELLNESS: {
        "title": "Bienestar general",
        "description": "Chequeo de hábitos y bienestar emocional",
        "duration": "5-10 minutos",
    },
    SELFESTEEM: {
        "title": "Autoestima",
        "description": "Valoración de la percepción de ti mismo",
        "duration": "5 minutos",
    },
}


@dataclass(frozen=True)
class ScoreResult:
    total: int
    severity: str


@dataclass(frozen=True)
class Interpretation:
    level: str
    severity: str
    description: str
    recommendations: list[str]
    risk_level: str


def _band_for(bands: list, value: float) -> tuple:
    for low, high, level, label in bands:
        if low <= value <= high:
            return level, label
    # out of range: clamp to the nearest end
    top = max(bands, key=lambda b: b[1])
    bottom = min(bands, key=lambda b: b[0])
    _, _, level, label = top if value > top[1] else bottom
    return level, label


def percent_level(percentage: float) -> tuple:
    """Level and label for a raw, unrounded percentage of the max score."""
    for minimum, level, label in PERCENT_LEVELS:
        if percentage >= minimum:
            return level, label
    _, level, label = PERCENT_LEVELS[-1]
    return level, label


def gad7_severity(total: int) -> str:
    """Return the GAD-7 severity label for a total."""
    return _band_for(GAD7_BANDS, total)[1]


def score(answers: list[int]) -> ScoreResult:
    """Sum answers and bucket the total with the GAD-7 thresholds."""
    total = sum(answers)
    return ScoreResult(total=total, severity=gad7_severity(total))


def max_score(test_type: str, answer_count: int) -> int:
    _, max_value = ANSWER_RULES[test_type]
    return answer_count * max_value


def validate_answers(test_type: str, answers: list[int]) -> list[str]:
    """Return a list of problems with the answers; empty when valid."""
    if test_type not in ANSWER_RULES:
        return [f"Unknown test type: {test_type}"]
    expected, max_value = ANSWER_RULES[test_type]
    problems = []
    if expected is not None and len(answers) != expected:
        problems.append(f"{test_type} requires exactly {expected} answers")
    if expected is None and not answers:
        problems.append(f"{test_type} requires at least one answer")
    for i, value in enumerate(answers):
        if not 0 <= value <= max_value:
            problems.append(f"Answer {i + 1} must be between 0 and {max_value}")
    return problems


def interpret(test_type: str, total: int, max_total: int) -> Interpretation:
    """Map a total onto level, severity, description, recommendations and risk."""
    if test_type in BANDS_BY_TEST:
        level, label = _band_for(BANDS_BY_TEST[test_type], total)
    else:
        level, label = percent_level(total / max_total * 100 if max_total else 0.0)
    description, recommendations, risk = INTERPRETATIONS[(test_type, level)]
    return Interpretation(
        level=level,
        severity=label,
        description=description,
        recommendations=list(recommendations),
        risk_level=risk,
    )


def is_improvement(test_type: str, latest: int, previous: int) -> bool:
    if test_type in LOWER_IS_BETTER:
        return latest < previous
    return latest > previous


def compare(test_type: str, latest, previous) -> dict:
    """Compare two evaluations of the same test (objects with score and completed_at)."""
    difference = latest.score - previous.score
    improvement = -difference if test_type in LOWER_IS_BETTER else difference
    if previous.score:
        percentage = round(improvement / previous.score * 100, 2)
    else:
        percentage = 0.0
    return {
        "scoreDifference": difference,
        "improvement": improvement,
        "improvementPercentage": percentage,
        "isImprovement": is_improvement(test_type, latest.score, previous.score),
        "daysBetween": abs((latest.completed_at - previous.completed_at).days),
    }


def improvement_rate(evaluations: list) -> float:
    """Mean first-to-last improvement percentage across test types.

    `evaluations` is ordered oldest first; types with fewer than two results
    are ignored.
    """
    by_type: dict[str, list] = {}
    for e in evaluations:
        by_type.setdefault(e.test_type, []).append(e)
    rates = []
    for test_type, items in by_type.items():
        if len(items) < 2:
            continue
        first, last = items[0], items[-1]
        if not first.score:
            continue
        change = last.score - first.score
        if test_type in LOWER_IS_BETTER:
            change = -change
        rates.append(change / first.score * 100)
    if not rates:
        return 0.0
    return round(sum(rates) / len(rates), 2)


def trend(scores: list[int], lower_is_better: bool = True) -> str:
    """Direction of the last two scores: improving, worsening, stable."""
    if len(scores) < 2:
        return "insufficient_data"
    previous, latest = scores[-2], scores[-1]
    if latest == previous:
        return "stable"
    better = latest < previous if lower_is_better else latest > previous
    return "improving" if better else "worsening"


def calculate_streak(entry_dates: list[date], today: date) -> int:
    """Consecutive days with an entry, counting back from today.

    A streak still counts if the latest entry was yesterday.
    """
    days = set(entry_dates)
    cursor = today if today in days else today - timedelta(days=1)
    streak = 0
    while cursor in days:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def next_streak(current: int, last_entry: date | None, entry_day: date) -> int:
    """Streak after adding an entry on entry_day given the previous entry day."""
    if last_entry is None:
        return 1
    if entry_day <= last_entry:
        # same day or backdated
        return max(current, 1)
    if entry_day - last_entry == timedelta(days=1):
        return current + 1
    return 1


# Achievements: code -> (name, condition description for reference)
ACHIEVEMENTS = {
    "first_entry": ("Primera Entrada", "primera entrada del diario"),
    "week_streak": ("Racha de 7 Días", "7 días seguidos escribiendo"),
    "first_test": ("Primer Test", "primera evaluación completada"),
}


def diary_achievements(total_entries: int, current_streak: int) -> list[str]:
    """Achievement codes earned by the user's diary counters."""
    codes = []
    if total_entries >= 1:
        codes.append("first_entry")
    if current_streak >= 7:
        codes.append("week_streak")
    return codes


def evaluation_achievements(total_evaluations: int) -> list[str]:
    return ["first_test"] if total_evaluations >= 1 else []
