"""
Medication Schemas
Pydantic models for medication-related API requests and responses
"""

from typing import Optional, List, Dict
from pydantic import BaseModel, Field, ConfigDict

from models import FoodConstraint


# ==================== BASE SCHEMAS ====================

class MedicationBase(BaseModel):
    """Base medication schema"""
    name: str = Field(..., min_length=1, max_length=255)
    dosage: str = Field(default="", max_length=100)
    frequency: str = Field(default="", max_length=100)


# ==================== REQUEST SCHEMAS ====================

class MedicationCreate(MedicationBase):
    """Schema for creating a new medication"""
    times: List[str] = Field(default_factory=list, description="HH:MM clock times; inferred when empty")
    food: FoodConstraint = FoodConstraint.NONE
    quantity: Optional[int] = Field(None, ge=0)
    refill_threshold: Optional[int] = Field(None, ge=0)
    drug_class: Optional[str] = Field(None, max_length=100)


class MedicationUpdate(BaseModel):
    """Schema for updating medication"""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    dosage: Optional[str] = Field(None, max_length=100)
    frequency: Optional[str] = Field(None, max_length=100)
    times: Optional[List[str]] = None
    food: Optional[FoodConstraint] = None
    quantity: Optional[int] = Field(None, ge=0)
    refill_threshold: Optional[int] = Field(None, ge=0)
    drug_class: Optional[str] = Field(None, max_length=100)


class RefillRequest(BaseModel):
    """Schema for logging a refill"""
    new_quantity: int = Field(..., ge=0)


# ==================== RESPONSE SCHEMAS ====================

class MedicationResponse(MedicationBase):
    """Schema for medication response"""
    id: str
    times: List[str]
    food: FoodConstraint
    quantity: Optional[int] = None
    refill_threshold: Optional[int] = None
    refill_notified: bool = False
    refill_history: List[str] = Field(default_factory=list)
    drug_class: Optional[str] = None
    is_prn: bool = False
    needs_refill: bool = False
    dose_status: Dict[str, str] = Field(default_factory=dict)
    missed_dose_reasons: Dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(from_attributes=True)


class MedicationList(BaseModel):
    """List of medications"""
    medications: List[MedicationResponse]
    total: int
