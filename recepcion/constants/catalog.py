"""Clinic service catalog: specialties, studies, aesthetics and insurers."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Sequence


@dataclass(frozen=True)
class CatalogItem:
    key: str
    label: str
    keywords: tuple[str, ...]


SPECIALTIES: tuple[CatalogItem, ...] = (
    CatalogItem("gine", "Ginecología / Obstetricia", ("gine", "obste", "papanico", "colpo")),
    CatalogItem("pedi", "Pediatría", ("pediatr", "nino", "infantil")),
    CatalogItem("clim", "Clínica médica / Medicina familiar", ("clinica", "familia", "general")),
    CatalogItem("card", "Cardiología", ("cardio", "corazon")),
    CatalogItem("derm", "Dermatología", ("derma", "piel")),
    CatalogItem("trau", "Traumatología", ("trauma", "rodilla", "hueso")),
    CatalogItem("gastro", "Gastroenterología", ("gastro", "digest")),
    CatalogItem("endo", "Endocrinología / Diabetología", ("endocrin", "diabe", "tiroid")),
    CatalogItem("uro", "Urología", ("urolog",)),
    CatalogItem("orl", "ORL", ("orl", "otorrino")),
    CatalogItem("oft", "Oftalmología", ("oftal", "ojo", "vision")),
    CatalogItem("psico", "Psicología", ("psico", "terapia")),
    CatalogItem("nutri", "Nutrición", ("nutri", "aliment")),
    CatalogItem("odonto", "Odontología", ("odonto", "diente")),
)

STUDIES: tuple[CatalogItem, ...] = (
    CatalogItem("mamo", "Mamografía", ("mamo",)),
    CatalogItem("radio", "Radiología", ("radiolog", "rayos")),
    CatalogItem("doppler", "Ecodoppler Color / Ecocardiograma Doppler", ("doppler", "ecocardiograma")),
    CatalogItem("eco", "Ecografía / Eco 5D", ("ecografia", "eco 5d", "eco")),
    CatalogItem("ecg", "ECG", ("ecg", "electrocardio")),
    CatalogItem("mapa", "MAPA / Presurometría", ("mapa", "presuro", "presion")),
    CatalogItem("ergo", "Ergometría", ("ergo",)),
    CatalogItem("holter", "Holter", ("holter",)),
    CatalogItem("lab", "Laboratorio", ("laboratorio", "analisis")),
    CatalogItem("resp", "Poligrafía / Espirometría", ("poligrafia", "espiro", "respir")),
    CatalogItem("audio", "Audiometría / BERA / OEA", ("audiometria", "bera", "oea", "imped")),
)

AESTHETICS: tuple[str, ...] = (
    "Rejuvenecimiento facial",
    "Mesoterapia (facial/corporal/capilar)",
    "Plasma rico en plaquetas (PRP)",
    "Botox",
    "Rellenos con ácido hialurónico",
    "Hilos tensores",
    "Punta de diamante / Peeling / Dermapen",
    "Tratamiento de celulitis / grasa localizada",
    "Criocirugía / electrocoagulación cutánea",
)

TOP_INSURERS: tuple[str, ...] = (
    "OSDE",
    "Swiss Medical",
    "Galeno",
    "Medifé",
    "OMINT",
    "SanCor Salud",
    "Prevención Salud",
    "Jerárquicos Salud",
    "Andes Salud",
    "Nobis",
    "Federada Salud",
    "Medicus",
)

DEFAULT_TURNO_LABEL = "Consulta médica"
DEFAULT_ESTUDIO_LABEL = "Estudio"


def find_match(norm: str, items: Sequence[CatalogItem]) -> Optional[CatalogItem]:
    """First catalog item with a keyword starting a word of the normalized text."""
    for item in items:
        if any(re.search(rf"\b{re.escape(kw)}", norm) for kw in item.keywords):
            return item
    return None
