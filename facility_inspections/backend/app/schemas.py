# backend/app/schemas.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, List

from pydantic import BaseModel, Field, ConfigDict


# -------------------- Inspections --------------------

class ChecklistItemOut(BaseModel):
    id: int
    description: str
    status: str
    sort_order: int
    model_config = ConfigDict(from_attributes=True)


class InspectionRoomOut(BaseModel):
    id: int
    name: str
    room_type: Optional[str] = None
    sort_order: int
    checklist_items: List[ChecklistItemOut] = Field(default_factory=list)
    model_config = ConfigDict(from_attributes=True)


class InspectionOut(BaseModel):
    id: int
    title: str
    type: str
    status: str

    property_id: int
    unit_id: Optional[int] = None
    assigned_to_id: Optional[int] = None
    completed_by_id: Optional[int] = None
    approved_by_id: Optional[int] = None
    rejected_by_id: Optional[int] = None

    findings: Optional[str] = None
    notes: Optional[str] = None
    tags: List[str] = Field(default_factory=list)

    scheduled_date: datetime
    completed_date: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    tenant_signature: Optional[str] = None

    template_id: Optional[int] = None
    recurring_inspection_id: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class InspectionDetailOut(InspectionOut):
    rooms: List[InspectionRoomOut] = Field(default_factory=list)


class InspectionCompleteIn(BaseModel):
    findings: Optional[str] = None
    notes: Optional[str] = None
    tags: Optional[List[str]] = None
    auto_create_jobs: bool = False
    preview_only: bool = False


class InspectionRejectIn(BaseModel):
    rejection_reason: str = Field(min_length=1)
    reassign_to_id: Optional[int] = None


class InspectionCancelIn(BaseModel):
    reason: Optional[str] = None


class InspectionSignatureIn(BaseModel):
    signature_url: str = Field(min_length=1, max_length=500)


# -------------------- Follow-up artifacts --------------------

class JobOut(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    priority: str
    status: str
    property_id: int
    unit_id: Optional[int] = None
    inspection_id: int
    model_config = ConfigDict(from_attributes=True)


class RecommendationOut(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    priority: str
    status: str
    property_id: int
    report_id: Optional[int] = None
    created_by_id: Optional[int] = None
    model_config = ConfigDict(from_attributes=True)


class JobDraftOut(BaseModel):
    title: str
    description: str
    priority: str
    status: str
    property_id: int
    unit_id: Optional[int] = None
    inspection_id: int


class RecommendationDraftOut(BaseModel):
    title: str
    description: str
    priority: str
    status: str
    property_id: int
    room_name: str
    checklist_item_id: Optional[int] = None


class CompletionOut(BaseModel):
    preview: bool = False
    inspection: Optional[InspectionOut] = None
    status: str
    jobs: List[JobOut] = Field(default_factory=list)
    recommendations: List[RecommendationOut] = Field(default_factory=list)


class CompletionPreviewOut(BaseModel):
    preview: bool = True
    status: str
    jobs: List[JobDraftOut] = Field(default_factory=list)
    recommendations: List[RecommendationDraftOut] = Field(default_factory=list)


class AuditLogOut(BaseModel):
    id: int
    inspection_id: int
    user_id: Optional[int] = None
    action: str
    changes: Optional[dict[str, Any]] = None
    created_at: datetime


# -------------------- Recurring schedules --------------------

class RecurringInspectionCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    type: str = "ROUTINE"
    property_id: int
    unit_id: Optional[int] = None
    assigned_to_id: Optional[int] = None
    template_id: Optional[int] = None

    frequency: str
    interval: int = Field(default=1, ge=1)
    day_of_month: Optional[int] = Field(default=None, ge=1, le=31)
    day_of_week: Optional[int] = Field(default=None, ge=0, le=6)

    start_date: datetime
    end_date: Optional[datetime] = None


class RecurringInspectionUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    assigned_to_id: Optional[int] = None
    template_id: Optional[int] = None
    end_date: Optional[datetime] = None
    is_active: Optional[bool] = None


class RecurringInspectionOut(BaseModel):
    id: int
    title: str
    type: str
    property_id: int
    unit_id: Optional[int] = None
    assigned_to_id: Optional[int] = None
    template_id: Optional[int] = None

    frequency: str
    interval: int
    day_of_month: Optional[int] = None
    day_of_week: Optional[int] = None

    start_date: datetime
    end_date: Optional[datetime] = None
    next_due_date: datetime
    last_generated_date: Optional[datetime] = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class RecurrencePreviewIn(BaseModel):
    frequency: str
    interval: int = Field(default=1, ge=1)
    day_of_month: Optional[int] = Field(default=None, ge=1, le=31)
    day_of_week: Optional[int] = Field(default=None, ge=0, le=6)
    start_date: datetime
    end_date: Optional[datetime] = None
    count: Optional[int] = Field(default=None, ge=1)


class RecurrencePreviewOut(BaseModel):
    occurrences: List[datetime]


class GenerationOut(BaseModel):
    generated_count: int
    processed: int
    skipped_existing: int
    deactivated: int
    failed: int
