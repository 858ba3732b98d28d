"""
Booking Event Handlers

Subscribers run after the booking transaction has committed. A failing
handler is logged by the message bus and never undoes the booking.
"""

import logging

from apps.bookings.domain.events import (
    BookingActivated,
    BookingBalancePaid,
    BookingCancelled,
    BookingCompleted,
    BookingConfirmed,
    BookingCreated,
    BookingExtended,
)
from apps.bookings.domain.state_machine import PaymentStatus
from apps.bookings.models import Booking
from apps.finances.gateway import PaymentGateway, PaymentGatewayError, get_payment_gateway

logger = logging.getLogger(__name__)


class RefundHandler:
    """
    Execute the refund a cancellation or a cheaper extension computed

    Only cancellations change the booking's payment status; an extension
    refund returns an overpayment and the booking stays paid.
    """

    def __init__(self, gateway: PaymentGateway | None = None):
        self.gateway = gateway

    def __call__(self, event: BookingCancelled | BookingExtended):
        if not event.refund_amount:
            return

        gateway = self.gateway or get_payment_gateway()
        try:
            result = gateway.refund(event.booking_id, event.refund_amount, reference=event.payment_reference)
        except PaymentGatewayError as e:
            logger.error(f"Refund of {event.refund_amount} for booking {event.booking_id} failed: {e}")
            return

        if not result.succeeded:
            logger.error(f"Refund of {event.refund_amount} for booking {event.booking_id} declined: {result.reason}")
            return

        if not isinstance(event, BookingCancelled):
            logger.info(f"Booking {event.booking_id} refunded overpayment {event.refund_amount}")
            return

        booking = Booking.objects.filter(pk=event.booking_id).only('amount_paid').first()
        if booking is None:
            return
        if event.refund_amount.amount >= booking.amount_paid:
            status = PaymentStatus.REFUNDED
        else:
            status = PaymentStatus.PARTIAL_REFUND
        Booking.objects.filter(pk=event.booking_id).update(payment_status=status.value)
        logger.info(f"Booking {event.booking_id} refunded {event.refund_amount} ({status.value})")


def log_booking_event(event):
    logger.info(f"Booking event {type(event).__name__}", extra={'booking_event': event.to_dict()})


refund_handler = RefundHandler()

EVENT_HANDLERS = {
    BookingCreated: [log_booking_event],
    BookingConfirmed: [log_booking_event],
    BookingBalancePaid: [log_booking_event],
    BookingActivated: [log_booking_event],
    BookingCompleted: [log_booking_event],
    BookingCancelled: [log_booking_event, refund_handler],
    BookingExtended: [log_booking_event, refund_handler],
}


def register_event_handlers(bus) -> None:
    for event_type, handlers in EVENT_HANDLERS.items():
        for handler in handlers:
            bus.register_event_handler(event_type, handler)
