"""Fixed lookup tables: version ids, language codes and narration voices."""

from __future__ import annotations

from dataclasses import dataclass

from scriptura.errors import UnknownVersionError, UnsupportedLanguageError

# ISO 639-1 -> ISO 639-3, as used by the upstream versions listing
LANGUAGE_CODES: dict[str, str] = {
    "es": "spa",
    "en": "eng",
    "pt": "por",
    "fr": "fra",
    "de": "deu",
    "it": "ita",
    "ru": "rus",
    "zh": "zho",
    "ja": "jpn",
    "ko": "kor",
}

# Version abbreviation -> upstream numeric version id
VERSION_IDS: dict[str, int] = {
    "BDO1573": 1715,
    "BHTI": 222,
    "BLPH": 28,
    "DHH94I": 52,
    "DHH94PC": 411,
    "DHHDK": 1845,
    "DHHS94": 1846,
    "GlossSP": 4212,
    "JBS": 1076,
    "LBLA": 89,
    "NBLA": 103,
    "NBV": 753,
    "NTBIZ": 3539,
    "NTV": 127,
    "NVI-S": 128,
    "ONBV": 4190,
    "spaPdDpt": 3365,
    "PDT": 197,
    "RVA2015": 1782,
    "RVC": 146,
    "RVES": 147,
    "RVR09": 1718,
    "RVR1960": 149,
    "RVR95": 150,
    "TCB": 4013,
    "TLA": 176,
    "TLAI": 178,
    "VBL": 3291,
}


@dataclass(frozen=True)
class VoiceProfile:
    """Voice parameters sent to the speech API for one narration language."""

    name: str
    engine: str
    language_code: str


VOICE_PROFILES: dict[str, VoiceProfile] = {
    "es": VoiceProfile(name="Dalia", engine="azure", language_code="es-MX"),
}


def get_version_id(abbreviation: str) -> int:
    try:
        return VERSION_IDS[abbreviation]
    except KeyError:
        raise UnknownVersionError(abbreviation) from None


def get_language_tag(language: str) -> str:
    """Return the ISO 639-3 tag for a 2-letter *language* code."""
    code = (language or "").lower()
    if len(code) != 2 or code not in LANGUAGE_CODES:
        raise UnsupportedLanguageError(language)
    return LANGUAGE_CODES[code]


def get_voice_profile(language: str) -> VoiceProfile:
    try:
        return VOICE_PROFILES[(language or "").lower()]
    except KeyError:
        raise UnsupportedLanguageError(language) from None
