from typing import Optional, Any

from pydantic import BaseModel, ConfigDict, Field


# Values a model uses when it cannot tell what the drug is
NOT_IDENTIFIED_VALUES = {"", "not identified", "unidentified", "unknown", "n/a", "na", "none", "null", "not provided"}

QUERY_LABELS = {
    "drug_name": "Drug Name",
    "ndc": "NDC",
    "gtin": "GTIN",
    "nafdac_number": "NAFDAC Number",
    "barcode": "Barcode",
    "free_text_query": "Query",
}


def is_identified(name: Optional[str]) -> bool:
    return bool(name) and name.strip().lower() not in NOT_IDENTIFIED_VALUES


class DrugQuery(BaseModel):
    """What the user typed or scanned. At least one field should be filled in."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    drug_name: Optional[str] = None
    ndc: Optional[str] = None
    gtin: Optional[str] = None
    nafdac_number: Optional[str] = None
    free_text_query: Optional[str] = None
    barcode: Optional[str] = None

    def populated(self) -> dict[str, str]:
        return {key: value for key, value in self.model_dump().items() if value}

    def is_empty(self) -> bool:
        return not self.populated()

    def lookup_code(self) -> Optional[str]:
        """The code sent to the external databases: NDC first, then GTIN, then the raw barcode."""
        return self.ndc or self.gtin or self.barcode or None

    def primary_identifier(self) -> str:
        return (
            self.lookup_code()
            or self.nafdac_number
            or self.drug_name
            or self.free_text_query
            or "N/A"
        )

    def describe(self) -> str:
        fields = self.populated()
        return "; ".join(f"{QUERY_LABELS[key]}: {fields[key]}" for key in QUERY_LABELS if key in fields)


class LookupResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    source_name: str
    found: bool
    manufacturer: Optional[str] = None
    brand_name: Optional[str] = None
    generic_name: Optional[str] = None
    raw_details: str
    discontinued: bool = False
    payload: Optional[dict[str, Any]] = None


class ModelVerdict(BaseModel):
    """The JSON shape every model is asked to return."""

    is_suspect: bool = Field(description="Whether the drug is suspected to be counterfeit, recalled, discontinued or otherwise problematic.")
    reason: str = Field(description="A concise explanation for the verdict, including the drug's identity if found.")
    drug_name: Optional[str] = Field(default=None, description="The identified name of the drug, or 'Not Identified'.")
    manufacturer: Optional[str] = Field(default=None, description="The identified manufacturer of the drug.")
    approval_info: Optional[str] = Field(default=None, description="Approval information such as dates and regulatory bodies (NAFDAC, FDA).")


class VerificationVerdict(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_suspect: bool
    reason: str
    drug_name: Optional[str] = None
    manufacturer: Optional[str] = None
    approval_info: Optional[str] = None
    source_model: Optional[str] = None
    evidence: list[LookupResult] = []

    @property
    def identified(self) -> bool:
        return is_identified(self.drug_name)
