"""Appointment domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from ...shared.pagination import Pagination

AppointmentType = Literal["VIDEO", "IN_PERSON", "CHAT", "VOICE"]
StatusFilter = Literal["PENDING", "CONFIRMED", "COMPLETED", "CANCELED", "NO_SHOW", "ALL"]


class BookAppointmentRequest(BaseModel):
    availabilityId: str
    reason: Optional[str] = Field(None, max_length=2000)
    appointmentType: AppointmentType


class ConfirmAppointmentRequest(BaseModel):
    appointmentId: str


class CancelAppointmentRequest(BaseModel):
    appointmentId: str
    reason: Optional[str] = Field(None, max_length=2000)


class RescheduleAppointmentRequest(BaseModel):
    appointmentId: str
    newAvailabilityId: str


class ApproveRescheduleRequest(BaseModel):
    rescheduleId: str


class MarkCompletedRequest(BaseModel):
    appointmentId: str
    notes: Optional[str] = None


class MarkNoShowRequest(BaseModel):
    appointmentId: str


class BookAppointmentResponse(BaseModel):
    appointmentId: str


class ConfirmAppointmentResponse(BaseModel):
    meetLink: str


class SuccessResponse(BaseModel):
    success: bool = True


class RescheduleRequestedResponse(SuccessResponse):
    rescheduleId: str


class AppointmentListItem(BaseModel):
    id: str
    status: str
    reason: Optional[str] = None
    appointmentType: str
    scheduledStart: datetime
    scheduledEnd: datetime
    createdAt: Optional[datetime] = None
    doctorId: str
    doctorName: Optional[str] = None
    doctorSpecialty: Optional[str] = None
    patientId: str
    patientName: Optional[str] = None
    meetLink: Optional[str] = None
    rescheduleRequestId: Optional[str] = None
    rescheduleStatus: Optional[str] = None
    latestRescheduleStatus: Optional[str] = None


class AppointmentListResponse(BaseModel):
    items: list[AppointmentListItem]
    pagination: Pagination


class ParticipantResponse(BaseModel):
    id: str
    name: str
    email: Optional[str] = None
    specialty: Optional[str] = None
    image: Optional[str] = None


class MeetingResponse(BaseModel):
    id: str
    meetLink: str
    calendarEventId: Optional[str] = None


class RescheduleResponse(BaseModel):
    id: str
    oldAvailabilityId: Optional[str] = None
    newAvailabilityId: Optional[str] = None
    requestedBy: str
    status: str
    createdAt: Optional[datetime] = None


class EventResponse(BaseModel):
    id: str
    oldStatus: Optional[str] = None
    newStatus: str
    changedBy: str
    actorRole: str
    note: Optional[str] = None
    createdAt: Optional[datetime] = None


class AppointmentDetailResponse(BaseModel):
    id: str
    status: str
    reason: Optional[str] = None
    notes: Optional[str] = None
    appointmentType: str
    availabilityId: str
    scheduledStart: datetime
    scheduledEnd: datetime
    completedAt: Optional[datetime] = None
    cancelledAt: Optional[datetime] = None
    cancelledBy: Optional[str] = None
    createdAt: Optional[datetime] = None
    doctor: ParticipantResponse
    patient: ParticipantResponse
    meeting: Optional[MeetingResponse] = None
    reschedules: list[RescheduleResponse] = []
    events: list[EventResponse] = []
