# (c) Crown Copyright GCHQ \n
"""
Reference data for maternity episode records.

Field names follow the Hospital Episode Statistics (HES) maternity tail: one row per
episode with administrative fields followed by up to three repeated baby slots.

The birth weight centile bands come from "Centile charts for birthweight for gestational
age for Scottish singleton births" (Bonellie, Chalmers, Gray, Greer, Jarvis and Williams).
Only the extremes of the gestation range are listed; weeks without an entry are not
checked. Add rows here to extend the check, the evaluator only ever looks bands up.
"""

RECORD_KEY_FIELDS = ["year", "file_row"]

SUBJECT_ID_FIELD = "extract_hes_id"
ADMISSION_DATE_FIELD = "admidate"
NUMBER_OF_BABIES_FIELD = "numbaby"

# Fields that together identify the same underlying episode
FAMILY_KEY_FIELDS = [SUBJECT_ID_FIELD, "procode", "epistart", "epiend", "epiorder"]

ADMINISTRATIVE_FIELDS = [
    "description",
    SUBJECT_ID_FIELD,
    "procode",
    "epistart",
    "epiend",
    "epiorder",
    "dob",
    "ethnos",
    ADMISSION_DATE_FIELD,
    "sex",
    "epitype",
    "matage",
    NUMBER_OF_BABIES_FIELD,
]

BABY_SLOTS = (1, 2, 3)

BABY_FIELD_STEMS = [
    "dobbaby",
    "biresus",
    "delstat",
    "birorder",
    "birstat",
    "birweit",
    "delmeth",
    "delplace",
    "gestat",
    "sexbaby",
]

DATE_FIELDS = ["epistart", "epiend", "dob", ADMISSION_DATE_FIELD] + [
    f"dobbaby{slot}" for slot in BABY_SLOTS
]


def baby_slot_fields(slot: int) -> list[str]:
    """The column names of a single baby slot, e.g. slot 2 -> ['dobbaby2', 'biresus2', ...]"""
    return [f"{stem}{slot}" for stem in BABY_FIELD_STEMS]


BABY_FIELDS = [field for slot in BABY_SLOTS for field in baby_slot_fields(slot)]

# Every column of an episode record, in export order
EPISODE_FIELDS = RECORD_KEY_FIELDS + ADMINISTRATIVE_FIELDS + BABY_FIELDS

# Completeness counts every populated field apart from the record key
COMPLETENESS_FIELDS = ADMINISTRATIVE_FIELDS + BABY_FIELDS

LIVE_BIRTH_STATUS = 1

# (baby sex code, gestation weeks, minimum weight g, maximum weight g)
BIRTH_WEIGHT_CENTILE_BANDS = (
    (1, 24, 326, 944),
    (1, 25, 379, 1080),
    (1, 26, 430, 1207),
    (1, 42, 2935, 4748),
    (1, 43, 2976, 4781),
    (2, 24, 270, 916),
    (2, 25, 320, 1044),
    (2, 26, 382, 1208),
    (2, 42, 2935, 4748),
    (2, 43, 2909, 4560),
)
