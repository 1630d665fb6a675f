from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator


# -----------------------------------------------------------------------------
def strip_names(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        raise ValueError("medicine_names must be a list of strings")
    names: list[str] = []
    for entry in value:
        if entry is None:
            continue
        stripped = str(entry).strip()
        if stripped:
            names.append(stripped)
    return names


###############################################################################
class OCRExtraction(BaseModel):
    """
    Output of the OCR step for one prescription image.
    - Only `medicine_names` and `confidence` drive matching.
    - Raw text and patient details are echoed back untouched.

    """

    medicine_names: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("medicine_names", "medicineNames"),
        description="Candidate medicine names extracted from the prescription.",
        examples=[["Paracetamol 500mg", "Amoxicillin 250 mg cap"]],
    )
    confidence: float | None = Field(
        None,
        ge=0,
        le=100,
        description="OCR confidence for the whole prescription (0-100).",
        examples=[82.5],
    )
    raw_text: str | None = Field(
        None,
        max_length=50000,
        validation_alias=AliasChoices("raw_text", "rawText"),
        description="Full OCR text of the prescription.",
    )
    patient_info: dict[str, Any] | None = Field(
        None,
        validation_alias=AliasChoices("patient_info", "patientInfo"),
        description="Optional patient details detected by OCR.",
    )

    @field_validator("medicine_names", mode="before")
    @classmethod
    def strip_medicine_names(cls, value: Any) -> list[str]:
        return strip_names(value)

    @field_validator("raw_text", mode="before")
    @classmethod
    def strip_raw_text(cls, value: str | None) -> str | None:
        if value is None:
            return None
        stripped = str(value).strip()
        return stripped or None


###############################################################################
class AlternativesRequest(BaseModel):
    medicine_names: list[str] = Field(
        ...,
        min_length=1,
        max_length=50,
        validation_alias=AliasChoices("medicine_names", "medicineNames"),
        description="Medicine names to look up substitutes for.",
    )

    @field_validator("medicine_names", mode="before")
    @classmethod
    def strip_medicine_names(cls, value: Any) -> list[str]:
        return strip_names(value)
