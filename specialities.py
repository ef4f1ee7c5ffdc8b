from typing import Optional, Sequence

OB_GYN = "207V00000X"
NURSE_MIDWIFE = "367A00000X"
NURSE_PRACTITIONER = "363L00000X"

SPECIALTY_TO_TAXONOMY = {
    "OB-GYN": OB_GYN,
    "Obstetrics": OB_GYN,
    "Gynecology": OB_GYN,
    "Maternal-Fetal Medicine": "207VM0101X",
    "Certified Nurse Midwife": NURSE_MIDWIFE,
    "Nurse Midwife Individual": NURSE_MIDWIFE,
    "Nurse Practitioner": NURSE_PRACTITIONER,
    "Women's Health Nurse Practitioner": "363LW0102X",
    "Family Nurse Practitioner": "363LF0000X",
}

# Plan provider-type ids -> taxonomy
PROVIDER_TYPE_TO_TAXONOMY = {
    "09": OB_GYN,               # OB-GYN
    "01": OB_GYN,               # Hospital
    "71": NURSE_MIDWIFE,        # Nurse Midwife Individual
    "46": NURSE_MIDWIFE,        # Certified Nurse Midwife
    "44": NURSE_PRACTITIONER,   # Nurse Practitioner
    "19": OB_GYN,               # Osteopathic Physician
    "20": OB_GYN,               # Physician / Osteopath Individual
}

_LOWER_TO_TAXONOMY = {k.lower(): v for k, v in SPECIALTY_TO_TAXONOMY.items()}


def to_taxonomy(user_specialty: Optional[str]) -> Optional[str]:
    if not user_specialty:
        return None
    if user_specialty in SPECIALTY_TO_TAXONOMY:
        return SPECIALTY_TO_TAXONOMY[user_specialty]

    key = user_specialty.lower()
    if key in _LOWER_TO_TAXONOMY:
        return _LOWER_TO_TAXONOMY[key]

    if "ob" in key and "gyn" in key:
        return OB_GYN
    if "midwife" in key:
        return NURSE_MIDWIFE
    if "nurse practitioner" in key:
        return NURSE_PRACTITIONER
    return None


def infer_from_provider_types(provider_type_ids: Optional[Sequence[str]]) -> Optional[str]:
    for type_id in provider_type_ids or []:
        code = PROVIDER_TYPE_TO_TAXONOMY.get(type_id)
        if code:
            return code
    return None


def resolve_taxonomy(
    specialty: Optional[str] = None,
    provider_type_ids: Optional[Sequence[str]] = None,
) -> Optional[str]:
    """
    Resolve a registry taxonomy code from a specialty label, falling back
    to the plan provider-type ids. None means the registry can't be filtered.
    """
    return to_taxonomy(specialty) or infer_from_provider_types(provider_type_ids)
