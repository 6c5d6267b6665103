"""
typing_center/catalog.py

Fixed processing steps per application type.

The catalog is static configuration: it is never stored in the database and
steps_for() is total (unknown types simply have no steps).
"""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

COMPLETED = "completed"
OTHER = "other"


APPLICATION_TYPES: Dict[str, str] = {
    "new_visa_inside": "New Visa (Inside)",
    "new_visa_outside": "New Visa (Outside)",
    "visa_renewal": "Visa Renewal",
    "visa_cancellation": "Visa Cancellation",
    "new_license": "Company License New",
    "license_renewal": "Company License Renewal",
    "labour_card_formation": "Labour Card Formation",
    "labour_card_cancellation": "Labour Card Cancellation",
    "contract_modification": "Contract Modification",
    OTHER: "Other",
}

EMIRATES: Dict[str, str] = {
    "dubai": "Dubai",
    "sharjah": "Sharjah",
    "ajman": "Ajman",
    "abu_dhabi": "Abu Dhabi",
    "ras_al_khaimah": "Ras Al Khaimah",
    "fujairah": "Fujairah",
    "umm_al_quwain": "Umm Al Quwain",
}


# Ordered step ids per type, without the terminal COMPLETED marker.
STEP_CATALOG: Dict[str, Tuple[str, ...]] = {
    "new_visa_inside": (
        "first_visit",
        "labour_insurance",
        "second_visit",
        "evisa_inside",
        "change_status",
        "medical_application",
        "eid_application",
        "third_visit",
        "iloe_insurance",
        "stamping",
    ),
    "new_visa_outside": (
        "first_visit",
        "labour_insurance",
        "second_visit",
        "evisa_outside",
        "medical_application",
        "eid_application",
        "third_visit",
        "iloe_insurance",
        "stamping",
    ),
    "visa_renewal": (
        "labour_card_renewal",
        "labour_insurance",
        "iloe_insurance_renewal",
        "medical_and_id",
        "stamping",
    ),
    "visa_cancellation": (
        "labour_cancellation_typing",
        "labour_cancellation_submission",
        "immigration_cancellation",
    ),
    "new_license": (
        "initial_approval",
        "trade_name_reservation",
        "ejari",
        "moa_typing",
        "payment_voucher",
        "license_issuance",
        "new_establishment_card",
        "labour_file_opening",
    ),
    "license_renewal": (
        "followup_receipt",
        "new_moa_typing",
        "payment_voucher",
        "license_issuance",
        "establishment_card_renewal",
        "update_establishment_labour",
    ),
    "labour_card_cancellation": (
        "labour_card_cancellation_typing",
        "labour_card_cancellation_submission",
    ),
    "labour_card_formation": (
        "labour_card_typing",
        "labour_card_submission",
        "labour_insurance",
        "work_permit_payment",
    ),
    "contract_modification": (
        "modify_work_permit",
        "submission",
    ),
    OTHER: (),
}


# step id -> (label, description)
STEP_LABELS: Dict[str, Tuple[str, str]] = {
    "first_visit": ("First Visit", "Initial client visit"),
    "labour_insurance": ("Labour Insurance", "Labour insurance processing"),
    "second_visit": ("Second Visit", "Follow-up visit"),
    "evisa_inside": ("E-Visa (Inside)", "E-Visa issuance (inside)"),
    "evisa_outside": ("E-Visa (Outside)", "E-Visa issuance (outside)"),
    "change_status": ("Change Status", "Visa status change"),
    "medical_application": ("Medical Application", "Medical test application"),
    "eid_application": ("Emirates ID Application", "EID submission"),
    "third_visit": ("Third Visit", "Final visit"),
    "iloe_insurance": ("ILOE Insurance", "ILOE insurance"),
    "stamping": ("Stamping", "Passport stamping"),
    "labour_card_renewal": ("Labour Card Renewal", "Labour card renewal"),
    "iloe_insurance_renewal": ("ILOE Insurance Renewal", "ILOE renewal"),
    "medical_and_id": ("Medical and ID", "Medical test & EID"),
    "labour_cancellation_typing": ("Labour Cancellation Typing", "Typing labour cancellation"),
    "labour_cancellation_submission": ("Labour Cancellation Submission", "Submit labour cancellation"),
    "immigration_cancellation": ("Immigration Cancellation", "Immigration cancellation"),
    "initial_approval": ("Initial Approval", "Partners & activities approval"),
    "trade_name_reservation": ("Trade Name Reservation", "Reserve trade name"),
    "ejari": ("Ejari", "Virtual or physical ejari"),
    "moa_typing": ("MOA Typing & Signing", "Memorandum preparation"),
    "payment_voucher": ("Payment Voucher", "Voucher generation"),
    "license_issuance": ("Licence Issuance", "License issued"),
    "new_establishment_card": ("Establishment Card", "New establishment card"),
    "labour_file_opening": ("Labour File Opening", "Open labour file"),
    "followup_receipt": ("Followup Receipt Generation", "Remove partner / location change"),
    "new_moa_typing": ("New MOA Typing & Signing", "MOA update"),
    "establishment_card_renewal": ("Establishment Card Renewal", "Renew establishment card"),
    "update_establishment_labour": ("Update Establishment in Labour", "Labour update"),
    "labour_card_cancellation_typing": ("Labour Card Cancellation Typing", "Typing cancellation"),
    "labour_card_cancellation_submission": ("Labour Card Cancellation Submission", "Submit cancellation"),
    "labour_card_typing": ("Labour Card Typing", "Typing labour card"),
    "labour_card_submission": ("Labour Card Submission", "Submit labour card"),
    "work_permit_payment": ("Work Permit Payment", "Payment transaction"),
    "modify_work_permit": ("Modify Work Permit", "Work permit modification"),
    "submission": ("Submission", "Submission to authority"),
    COMPLETED: ("Completed", "Process completed"),
}


def steps_for(application_type: Optional[str]) -> List[str]:
    """
    Ordered step ids for a type, terminated by COMPLETED.

    'other' and unknown types have no steps and return [].
    """
    steps = STEP_CATALOG.get(application_type or "", ())
    if not steps:
        return []
    return list(steps) + [COMPLETED]


def is_known_type(application_type: Optional[str]) -> bool:
    return application_type in APPLICATION_TYPES


def step_label(step_id: str) -> str:
    label, _ = STEP_LABELS.get(step_id, (step_id.replace("_", " ").title(), ""))
    return label


def step_description(step_id: str) -> str:
    return STEP_LABELS.get(step_id, ("", ""))[1]


def catalog_payload() -> dict:
    """Whole catalog in the shape the UI renders its dropdowns and step lists from."""
    return {
        "application_types": [
            {
                "value": key,
                "label": label,
                "steps": [
                    {
                        "value": step,
                        "label": step_label(step),
                        "description": step_description(step),
                    }
                    for step in steps_for(key)
                ],
            }
            for key, label in APPLICATION_TYPES.items()
        ],
        "emirates": [{"value": key, "label": label} for key, label in EMIRATES.items()],
    }
