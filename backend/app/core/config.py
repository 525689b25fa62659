from pydantic_settings import BaseSettings
from typing import Dict, List, Optional, Tuple


class Settings(BaseSettings):
    APP_NAME: str = "Patient Health Summary Service"
    VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"

    DATABASE_URL: str = "sqlite:///./patients.db"
    SEED_DEMO_DATA: bool = True

    # Collaborating services (None disables the lookup)
    USER_SERVICE_URL: Optional[str] = None
    SCHEDULE_SERVICE_URL: Optional[str] = None
    ADDRESS_SERVICE_URL: Optional[str] = None
    INTEGRATION_API_KEY: Optional[str] = None
    INTEGRATION_TIMEOUT: float = 5.0

    # Clinical rule tables - JSON when set through the environment
    CRITICAL_REACTION_KEYWORDS: List[str] = [
        "anaphylaxis",
        "anaphylactic",
        "life-threatening",
        "critical",
        "angioedema",
        "airway",
        "stevens-johnson",
    ]
    CHRONIC_CONDITION_KEYWORDS: List[str] = [
        "chronic",
        "diabetes",
        "hypertension",
        "asthma",
        "copd",
        "heart failure",
        "coronary artery disease",
        "kidney disease",
        "arthritis",
        "epilepsy",
        "hiv",
        "cancer",
    ]
    DRUG_INTERACTIONS: List[Tuple[str, str]] = [
        ("warfarin", "aspirin"),
        ("warfarin", "ibuprofen"),
        ("warfarin", "naproxen"),
        ("warfarin", "fluconazole"),
        ("lisinopril", "spironolactone"),
        ("lisinopril", "potassium chloride"),
        ("simvastatin", "clarithromycin"),
        ("simvastatin", "itraconazole"),
        ("sildenafil", "nitroglycerin"),
        ("methotrexate", "trimethoprim"),
        ("tramadol", "fluoxetine"),
        ("tramadol", "sertraline"),
        ("clopidogrel", "omeprazole"),
        ("digoxin", "amiodarone"),
        ("metformin", "contrast dye"),
    ]
    ALLERGEN_CROSS_REACTIVITY: Dict[str, List[str]] = {
        "penicillin": ["amoxicillin", "ampicillin", "piperacillin", "dicloxacillin", "nafcillin"],
        "cephalosporin": ["cephalexin", "cefazolin", "ceftriaxone", "cefuroxime"],
        "sulfa": ["sulfamethoxazole", "sulfasalazine", "sulfadiazine"],
        "aspirin": ["ibuprofen", "naproxen", "diclofenac", "ketorolac"],
        "codeine": ["morphine", "hydrocodone", "oxycodone"],
    }

    # Thresholds
    POLYPHARMACY_THRESHOLD: int = 3          # more than this many active medications
    EXPIRING_MEDICATION_DAYS: int = 7
    DASHBOARD_RECENT_HISTORY_COUNT: int = 5
    CARE_PLAN_MAX_APPOINTMENTS: int = 5
    DEFAULT_TIMELINE_DAYS: int = 365
    SEARCH_CONCURRENCY: int = 8              # patients loaded at once by cross-patient searches

    class Config:
        env_file = ".env"


settings = Settings()
