"""Model-to-schema conversion shared by the routers."""

from typing import Optional

from ..models.booking import Booking as BookingModel
from ..models.inventory import InventoryAdjustment as InventoryAdjustmentModel
from ..models.trip import Trip as TripModel
from ..models.waitlist import WaitingListEntry
from ..schemas.booking import Booking
from ..schemas.trip import InventoryAdjustment, Trip, TurnGranted
from ..schemas.waitlist import QueueStatus, WaitlistEntry
from ..services.allocation_engine import TurnGrant
from ..services.booking_window import format_booking_window
from ..services.waitlist_service import QueueStatusView


def trip_to_schema(trip: TripModel) -> Trip:
    return Trip(
        id=str(trip.id),
        name=trip.name,
        start_date=trip.start_date,
        total_rooms=trip.total_rooms,
        available_rooms=trip.available_rooms,
        created_at=trip.created_at,
        updated_at=trip.updated_at,
    )


def adjustment_to_schema(adjustment: InventoryAdjustmentModel) -> InventoryAdjustment:
    return InventoryAdjustment(
        id=str(adjustment.id),
        trip_id=str(adjustment.trip_id),
        delta=adjustment.delta,
        reason=adjustment.reason,
        actor=adjustment.actor,
        total_rooms_before=adjustment.total_rooms_before,
        total_rooms_after=adjustment.total_rooms_after,
        available_rooms_before=adjustment.available_rooms_before,
        available_rooms_after=adjustment.available_rooms_after,
        created_at=adjustment.created_at,
    )


def entry_to_schema(entry: WaitingListEntry) -> WaitlistEntry:
    return WaitlistEntry(
        id=str(entry.id),
        trip_id=str(entry.trip_id),
        user_id=entry.user_id,
        position=entry.position,
        rooms_requested=entry.rooms_requested,
        status=entry.status,
        joined_at=entry.joined_at,
        notified_at=entry.notified_at,
        notification_expires_at=entry.notification_expires_at,
    )


def turn_to_schema(grant: Optional[TurnGrant]) -> Optional[TurnGranted]:
    if grant is None:
        return None
    return TurnGranted(
        entry_id=str(grant.entry.id),
        user_id=grant.entry.user_id,
        position=grant.entry.position,
        booking_window_hours=grant.booking_window_hours,
        expires_at=grant.expires_at,
    )


def status_to_schema(view: QueueStatusView) -> QueueStatus:
    return QueueStatus(
        trip_id=str(view.trip.id),
        trip_name=view.trip.name,
        start_date=view.trip.start_date,
        user_id=view.user_id,
        in_queue=view.in_queue,
        entry=entry_to_schema(view.entry) if view.entry is not None else None,
        position=view.position,
        people_in_queue=view.people_in_queue,
        available_rooms=view.trip.available_rooms,
        days_until_trip=view.days_until_trip,
        booking_window_hours=view.booking_window_hours,
        booking_window_text=format_booking_window(view.booking_window_hours),
        estimated_wait=view.estimated_wait,
        is_notified=view.is_notified,
        turn_expires_at=view.turn_expires_at,
        can_join=view.can_join,
        can_leave=view.can_leave,
        message=view.message,
    )


def booking_to_schema(booking: BookingModel) -> Booking:
    return Booking(
        id=str(booking.id),
        trip_id=str(booking.trip_id),
        user_id=booking.user_id,
        number_of_rooms=booking.number_of_rooms,
        status=booking.status,
        created_at=booking.created_at,
        cancelled_at=booking.cancelled_at,
        cancellation_reason=booking.cancellation_reason,
    )
