"""Umbrales clínicos y factores de conversión.

Todo valor numérico clínico debe referenciarse desde este módulo.
"""

from __future__ import annotations

# ── Conversión de unidades ───────────────────────────────────
LB_TO_KG: float = 0.45359237
MMOL_TO_MG_DL: float = 18.0182

# ── Glucosa (mg/dL) ──────────────────────────────────────────
GLUCOSE_HIGH_ABOVE: float = 160.0
GLUCOSE_LOW_BELOW: float = 80.0

# ── Presión arterial (mmHg) ──────────────────────────────────
BP_HIGH_SYSTOLIC_MIN: float = 140.0
BP_HIGH_DIASTOLIC_MIN: float = 90.0
BP_LOW_SYSTOLIC_MAX: float = 90.0
BP_LOW_DIASTOLIC_MAX: float = 60.0
BP_ELEVATED_SYSTOLIC_MIN: float = 120.0
BP_ELEVATED_DIASTOLIC_MIN: float = 80.0

# ── IMC (kg/m²) ──────────────────────────────────────────────
BMI_UNDERWEIGHT_BELOW: float = 18.5
BMI_OVERWEIGHT_MIN: float = 25.0
BMI_OBESE_MIN: float = 30.0

# Altura usada cuando el perfil no tiene una (m)
DEFAULT_HEIGHT_M: float = 1.75

# ── Ventanas de resumen (días) ───────────────────────────────
SUMMARY_WINDOW_DAYS: int = 7
