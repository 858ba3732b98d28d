"""
Booking Command Handlers

These are the use cases of the reservation engine. They compose the
pure domain functions (rate table, availability, pricing, promo
validation, state machine) with persistence, and run every write inside
a DjangoUnitOfWork so that either all rows change or none do.

Validation outcomes come back as ``BookingError`` values. Database
failures are re-raised as ``EngineFault``.
"""

import functools
import logging
from dataclasses import replace
from datetime import datetime, time, timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.db import DatabaseError
from django.utils import timezone

from apps.bookings.application.commands import (
    ActivateDueBookingsCommand,
    AvailabilityCalendarQuery,
    CheckAvailabilityQuery,
    CheckoutCommand,
    ConfirmBookingCommand,
    ExpireHoldsCommand,
    ExtendBookingCommand,
    PayBookingCommand,
    QuoteQuery,
    TransitionBookingCommand,
    ValidatePromoQuery,
)
from apps.bookings.conf import EngineConfig
from apps.bookings.domain.availability import AvailabilityResult, calendar, check_availability
from apps.bookings.domain.errors import (
    BookingError,
    EmptyCheckout,
    EngineFault,
    InsufficientCredit,
    InsufficientInventory,
    InvalidDateRange,
    InvalidQuantity,
    InvalidTransition,
    NotFound,
    PaymentFailed,
    PromoInvalid,
)
from apps.bookings.domain.events import (
    BookingActivated,
    BookingBalancePaid,
    BookingCancelled,
    BookingCompleted,
    BookingConfirmed,
    BookingCreated,
    BookingExtended,
)
from apps.bookings.domain.pricing import DepositMode, PriceBreakdown, price_rental
from apps.bookings.domain.state_machine import (
    HOLDING_STATUSES,
    BookingEvent,
    BookingStatus,
    PaymentMethod,
    PaymentStatus,
    next_status,
)
from apps.bookings.models import Booking
from apps.bookings.repositories import BookingRepository, InventoryRepository
from apps.finances import services as wallet
from apps.finances.gateway import PaymentGateway, PaymentGatewayError, get_payment_gateway
from apps.finances.models import WalletTransaction
from apps.promotions.domain.validator import (
    PromoRejection,
    ValidationResult,
    compute_discount,
    validate,
    window_rejection,
)
from apps.promotions.services import (
    PromoUsageExhausted,
    count_user_redemptions,
    find_promo_code,
    normalize_code,
    redeem,
    validate_promo,
)
from shared.application.uow import DjangoUnitOfWork
from shared.domain.value_objects import ZERO, DateRange, Money, round_money, to_decimal
from shared.infrastructure.clock import Clock, system_clock

logger = logging.getLogger(__name__)

RATE_PRECISION = Decimal('0.000001')


def translate_db_errors(method):
    """Re-raise persistence failures as EngineFault"""
    @functools.wraps(method)
    def wrapper(*args, **kwargs):
        try:
            return method(*args, **kwargs)
        except DatabaseError as e:
            logger.error(f"Persistence failure in {method.__qualname__}: {e}", exc_info=True)
            raise EngineFault(str(e)) from e
    return wrapper


class ReservationAborted(Exception):
    """Raised inside a unit of work to roll it back and return ``error``"""

    def __init__(self, error: BookingError):
        super().__init__(error.detail)
        self.error = error


def check_dates(start_date, end_date, today) -> InvalidDateRange | None:
    if end_date < start_date:
        return InvalidDateRange(start_date, end_date, "End date must not be before start date")
    if start_date < today:
        return InvalidDateRange(start_date, end_date, "Start date cannot be in the past")
    return None


def check_quantity(quantity: int, item) -> InvalidQuantity | None:
    if quantity < 1 or quantity > item.quantity_total:
        return InvalidQuantity(requested=quantity, maximum=item.quantity_total)
    return None


def start_of_day(day):
    return timezone.make_aware(datetime.combine(day, time.min), timezone.get_current_timezone())


def promo_checker(promo, code: str, user_id, clock: Clock):
    """Build the pricing callback that validates ``code`` against a subtotal."""
    normalized = normalize_code(code)

    def check(subtotal) -> ValidationResult:
        terms = promo.terms() if promo else None
        redemptions = count_user_redemptions(promo, user_id) if promo else 0
        result = validate(terms, subtotal, redemptions, clock.now())
        return result if result.code else replace(result, code=normalized)

    return check


class EngineHandler:
    """Shared collaborators of the booking use cases"""

    def __init__(
        self,
        clock: Clock = system_clock,
        config: EngineConfig | None = None,
        items: InventoryRepository | None = None,
        bookings: BookingRepository | None = None,
    ):
        self.clock = clock
        self.config = config
        self.items = items or InventoryRepository()
        self.bookings = bookings or BookingRepository()

    def get_config(self) -> EngineConfig:
        return self.config or EngineConfig.from_settings()

    def __call__(self, command):
        return self.handle(command)

    def _availability(self, item, window: DateRange, quantity: int, buffer_days: int, exclude_id=None):
        reservations = self.bookings.reservations(
            item.pk,
            window,
            buffer_days=buffer_days,
            exclude_id=exclude_id,
        )
        return check_availability(
            item.quantity_total,
            reservations,
            window,
            quantity,
            buffer_days=buffer_days,
            rentable=item.is_rentable,
        )

    def _credit_error(self, user_id, requested) -> InsufficientCredit | None:
        requested = round_money(max(to_decimal(requested or ZERO), ZERO))
        if requested == ZERO:
            return None
        available = wallet.get_balance(user_id)
        if requested > available:
            return InsufficientCredit(requested=str(requested), available=str(available))
        return None

    @staticmethod
    def _invalid(booking, event, reason: str = '') -> InvalidTransition:
        error = InvalidTransition(
            booking_id=booking.pk,
            status=booking.status,
            event=getattr(event, 'value', event),
            reason=reason,
        )
        logger.error(f"Invalid transition on booking {booking.booking_code}: {error.detail}")
        return error


# ===== Queries =====

class QuoteHandler(EngineHandler):
    """
    Price a prospective booking

    Read-only and lock-free: calling it twice with the same input and no
    intervening writes returns the same breakdown. The promo code is
    validated, never redeemed.
    """

    @translate_db_errors
    def handle(self, query: QuoteQuery) -> PriceBreakdown | BookingError:
        config = self.get_config()
        error = check_dates(query.start_date, query.end_date, self.clock.today())
        if error:
            return error

        item = self.items.get(query.item_id)
        if item is None:
            return NotFound('InventoryItem', str(query.item_id))
        error = check_quantity(query.quantity, item)
        if error:
            return error

        window = DateRange(query.start_date, query.end_date)
        availability = self._availability(item, window, query.quantity, config.buffer_days)
        if not availability.available:
            return InsufficientInventory(item.pk, query.quantity, availability.remaining_on_worst_day)

        error = self._credit_error(query.user_id, query.wallet_credit)
        if error:
            return error

        promo_check = None
        if query.promo_code:
            promo = find_promo_code(query.promo_code)
            promo_check = promo_checker(promo, query.promo_code, query.user_id, self.clock)

        return price_rental(
            item.rate_card(),
            window,
            query.quantity,
            promo_check=promo_check,
            wallet_credit=query.wallet_credit or ZERO,
            tax_rate=config.tax_rate,
            currency=config.currency,
        )


class CheckAvailabilityHandler(EngineHandler):
    @translate_db_errors
    def handle(self, query: CheckAvailabilityQuery) -> AvailabilityResult | BookingError:
        if query.end_date < query.start_date:
            return InvalidDateRange(query.start_date, query.end_date, "End date must not be before start date")

        item = self.items.get(query.item_id)
        if item is None:
            return NotFound('InventoryItem', str(query.item_id))
        if query.quantity < 1:
            return InvalidQuantity(requested=query.quantity, maximum=item.quantity_total)

        buffer_days = self.get_config().buffer_days if query.buffer_days is None else query.buffer_days
        window = DateRange(query.start_date, query.end_date)
        return self._availability(item, window, query.quantity, buffer_days)


class AvailabilityCalendarHandler(EngineHandler):
    """Free units for each day of a window, for calendar widgets"""

    @translate_db_errors
    def handle(self, query: AvailabilityCalendarQuery):
        config = self.get_config()
        if query.end_date < query.start_date:
            return InvalidDateRange(query.start_date, query.end_date, "End date must not be before start date")
        window = DateRange(query.start_date, query.end_date)
        if len(window) > config.max_calendar_days:
            return InvalidDateRange(
                query.start_date,
                query.end_date,
                f"Calendar window is limited to {config.max_calendar_days} days",
            )

        item = self.items.get(query.item_id)
        if item is None:
            return NotFound('InventoryItem', str(query.item_id))

        reservations = self.bookings.reservations(item.pk, window, buffer_days=config.buffer_days)
        return calendar(
            item.quantity_total,
            reservations,
            window,
            buffer_days=config.buffer_days,
            rentable=item.is_rentable,
        )


class ValidatePromoHandler(EngineHandler):
    @translate_db_errors
    def handle(self, query: ValidatePromoQuery) -> ValidationResult:
        result = validate_promo(query.code, query.user_id, to_decimal(query.subtotal), clock=self.clock)
        return result if result.code else replace(result, code=normalize_code(query.code))


# ===== Commands =====

class ConfirmBookingHandler(EngineHandler):
    """
    Handler for ConfirmBooking command

    Strategy:
    1. Start database transaction (atomic)
    2. Lock the InventoryItem row (SELECT FOR UPDATE); concurrent
       confirmations for the same item queue up here
    3. Re-check availability against live holding bookings
    4. Lock and re-validate the promo code, then price the booking
    5. Insert the pending Booking with its pricing snapshot
    6. Redeem the promo (guarded increment) and debit wallet credit
    7. Commit; publish BookingCreated after commit

    Any failure raises ReservationAborted inside the atomic block, so the
    booking, the redemption and the debit roll back together.
    """

    @translate_db_errors
    def handle(self, command: ConfirmBookingCommand) -> Booking | BookingError:
        config = self.get_config()
        error = check_dates(command.start_date, command.end_date, self.clock.today())
        if error:
            return error

        renter = get_user_model().objects.filter(pk=command.renter_id).first()
        if renter is None:
            return NotFound('User', str(command.renter_id))

        logger.info(
            f"Confirming booking of item {command.item_id} x{command.quantity} "
            f"for user {renter.pk}, dates {command.start_date}..{command.end_date}"
        )

        try:
            with DjangoUnitOfWork() as uow:
                item = self.items.get(command.item_id, lock=True)
                booking = self.place(uow, item, renter, command, config)
        except ReservationAborted as e:
            return e.error

        logger.info(f"Booking created: {booking.booking_code} (ID: {booking.pk}), total {booking.total_amount}")
        return booking

    def place(self, uow, item, renter, line, config: EngineConfig) -> Booking:
        """
        Reserve one line inside an open unit of work

        ``item`` must already be locked by the caller. ``line`` is a
        ConfirmBookingCommand or a CheckoutLine.
        """
        if item is None:
            raise ReservationAborted(NotFound('InventoryItem', str(line.item_id)))
        error = check_quantity(line.quantity, item)
        if error:
            raise ReservationAborted(error)

        window = DateRange(line.start_date, line.end_date)
        availability = self._availability(item, window, line.quantity, config.buffer_days)
        if not availability.available:
            logger.info(
                f"Item {item.pk} has {availability.remaining_on_worst_day} unit(s) left "
                f"on {availability.worst_day}; requested {line.quantity}"
            )
            raise ReservationAborted(
                InsufficientInventory(item.pk, line.quantity, availability.remaining_on_worst_day)
            )

        error = self._credit_error(renter.pk, line.wallet_credit)
        if error:
            raise ReservationAborted(error)

        promo = None
        promo_check = None
        if line.promo_code:
            promo = find_promo_code(line.promo_code, lock=True)
            promo_check = promo_checker(promo, line.promo_code, renter.pk, self.clock)

        breakdown = price_rental(
            item.rate_card(),
            window,
            line.quantity,
            promo_check=promo_check,
            wallet_credit=line.wallet_credit or ZERO,
            tax_rate=config.tax_rate,
            currency=config.currency,
        )
        if isinstance(breakdown, BookingError):
            raise ReservationAborted(breakdown)

        deposit_mode = DepositMode(line.deposit_mode or config.default_deposit_mode)
        booking = Booking.objects.create(
            item=item,
            renter=renter,
            start_date=window.start_date,
            end_date=window.end_date,
            quantity=line.quantity,
            total_days=breakdown.total_days,
            daily_rate_used=breakdown.daily_rate_used.quantize(RATE_PRECISION),
            subtotal=breakdown.subtotal,
            discount_amount=breakdown.discount_amount,
            tax=breakdown.tax,
            damage_deposit=breakdown.damage_deposit,
            wallet_credit_applied=breakdown.wallet_credit_applied,
            total_amount=breakdown.amount_due(deposit_mode),
            deposit_mode=deposit_mode.value,
            currency=breakdown.currency,
            promo_code=promo,
            hold_expires_at=self.clock.now() + timedelta(minutes=config.hold_minutes),
            notes=line.notes,
        )

        if promo is not None:
            try:
                redeem(
                    promo,
                    user=renter,
                    booking=booking,
                    discount_applied=breakdown.discount_amount,
                    credit_awarded=breakdown.promo_credit,
                    clock=self.clock,
                )
            except PromoUsageExhausted as e:
                raise ReservationAborted(
                    PromoInvalid(promo_code=normalize_code(line.promo_code), reason=PromoRejection.USAGE_EXHAUSTED)
                ) from e

        if breakdown.wallet_credit_applied > ZERO:
            try:
                wallet.debit(
                    renter,
                    breakdown.wallet_credit_applied,
                    booking=booking,
                    description=f"Credit applied to booking #{booking.booking_code}",
                )
            except wallet.InsufficientFunds as e:
                raise ReservationAborted(
                    InsufficientCredit(requested=str(e.requested), available=str(e.available))
                ) from e

        uow.record(BookingCreated(
            aggregate_id=booking.pk,
            booking_id=booking.pk,
            item_id=item.pk,
            renter_id=renter.pk,
            dates=window,
            quantity=booking.quantity,
            total_amount=Money(booking.total_amount, booking.currency),
        ))
        return booking


class CheckoutHandler(EngineHandler):
    """
    Book several items at once, all or nothing

    Every item row is locked in primary key order before the first line
    is placed, so two checkouts sharing items queue up instead of
    deadlocking. Lines for the same item see each other's bookings. A
    line that fails rolls back the bookings, redemptions and debits of
    the lines placed before it.
    """

    def __init__(self, confirm: ConfirmBookingHandler, **kwargs):
        super().__init__(**kwargs)
        self.confirm = confirm

    @translate_db_errors
    def handle(self, command: CheckoutCommand) -> list[Booking] | BookingError:
        if not command.lines:
            return EmptyCheckout()

        config = self.get_config()
        today = self.clock.today()
        for line in command.lines:
            error = check_dates(line.start_date, line.end_date, today)
            if error:
                return error

        renter = get_user_model().objects.filter(pk=command.renter_id).first()
        if renter is None:
            return NotFound('User', str(command.renter_id))

        try:
            with DjangoUnitOfWork() as uow:
                items = {
                    item_id: self.items.get(item_id, lock=True)
                    for item_id in sorted({line.item_id for line in command.lines})
                }
                bookings = [
                    self.confirm.place(uow, items[line.item_id], renter, line, config)
                    for line in command.lines
                ]
        except ReservationAborted as e:
            logger.info(f"Checkout of {len(command.lines)} line(s) for user {renter.pk} rolled back: {e.error.detail}")
            return e.error

        logger.info(
            f"Checkout for user {renter.pk} created bookings "
            f"{', '.join(booking.booking_code for booking in bookings)}"
        )
        return bookings


class TransitionBookingHandler(EngineHandler):
    """
    Apply a lifecycle event to a booking

    The transition table decides whether the event is legal; an illegal
    event returns InvalidTransition and leaves the row untouched.
    """

    @translate_db_errors
    def handle(self, command: TransitionBookingCommand) -> Booking | BookingError:
        event = BookingEvent(command.event)

        with DjangoUnitOfWork() as uow:
            booking = self.bookings.get(command.booking_id, lock=True)
            if booking is None:
                return NotFound('Booking', str(command.booking_id))

            check = next_status(
                booking.status,
                event,
                end_date=booking.end_date,
                today=self.clock.today(),
            )
            if not check.allowed:
                return self._invalid(booking, event, check.reason)

            now = self.clock.now()
            if event == BookingEvent.HOLD_EXPIRED and booking.hold_expires_at and booking.hold_expires_at > now:
                return self._invalid(booking, event, 'the payment window is still open')
            if event == BookingEvent.CANCELLED and command.actor_id is None:
                return self._invalid(booking, event, 'cancellation requires a renter or operator')

            old_status = booking.status
            booking.status = check.target.value

            if check.target == BookingStatus.CONFIRMED:
                self._confirm(booking, command, now, uow)
            elif check.target == BookingStatus.ACTIVE:
                booking.picked_up_at = now
                booking.save(update_fields=['status', 'picked_up_at', 'updated_at'])
                uow.record(BookingActivated(aggregate_id=booking.pk, booking_id=booking.pk, item_id=booking.item_id))
            elif check.target == BookingStatus.COMPLETED:
                booking.returned_at = now
                booking.save(update_fields=['status', 'returned_at', 'updated_at'])
                uow.record(BookingCompleted(aggregate_id=booking.pk, booking_id=booking.pk, item_id=booking.item_id))
            elif check.target == BookingStatus.CANCELLED:
                self._cancel(booking, command, event, old_status, now, uow)

        logger.info(f"Booking {booking.booking_code}: {old_status} -> {booking.status} ({event.value})")
        return booking

    def _confirm(self, booking, command, now, uow):
        booking.payment_status = PaymentStatus.PAID.value
        booking.payment_method = PaymentMethod(command.payment_method).value
        booking.payment_reference = command.payment_reference
        booking.amount_paid = booking.total_amount
        booking.confirmed_at = now
        booking.hold_expires_at = None
        booking.save(update_fields=[
            'status',
            'payment_status',
            'payment_method',
            'payment_reference',
            'amount_paid',
            'confirmed_at',
            'hold_expires_at',
            'updated_at',
        ])

        redemption = getattr(booking, 'promo_redemption', None) if booking.promo_code_id else None
        if redemption is not None and redemption.credit_awarded > ZERO:
            wallet.credit(
                booking.renter,
                redemption.credit_awarded,
                kind=WalletTransaction.Kind.PROMO_CREDIT,
                booking=booking,
                promo_code=booking.promo_code,
                description=f"Promo code {booking.promo_code.code} credit",
            )

        uow.record(BookingConfirmed(
            aggregate_id=booking.pk,
            booking_id=booking.pk,
            renter_id=booking.renter_id,
            payment_method=booking.payment_method,
            amount_paid=Money(booking.amount_paid, booking.currency),
        ))

    def _cancel(self, booking, command, event, old_status, now, uow):
        if event == BookingEvent.HOLD_EXPIRED:
            source = Booking.CancellationSource.SYSTEM
        else:
            source = command.source or Booking.CancellationSource.RENTER

        refund_amount = ZERO
        ratio = Decimal('1')
        if booking.payment_status == PaymentStatus.PAID.value:
            hours_before_start = (start_of_day(booking.start_date) - now).total_seconds() / 3600
            decision = self.get_config().refund_policy.decide(booking.amount_paid, hours_before_start)
            refund_amount = decision.amount
            ratio = decision.ratio
            logger.info(
                f"Refund for booking {booking.booking_code}: {decision.tier.value} "
                f"({refund_amount} of {booking.amount_paid})"
            )

        restore = round_money(booking.wallet_credit_applied * ratio)
        if restore > ZERO:
            wallet.credit(
                booking.renter,
                restore,
                kind=WalletTransaction.Kind.BOOKING_RESTORE,
                booking=booking,
                description=f"Credit restored from cancelled booking #{booking.booking_code}",
            )

        booking.cancelled_at = now
        booking.cancelled_by_id = command.actor_id
        booking.cancellation_source = source
        booking.cancellation_reason = command.reason[:255]
        booking.refund_amount = booking.refund_amount + refund_amount
        booking.hold_expires_at = None
        booking.save(update_fields=[
            'status',
            'cancelled_at',
            'cancelled_by',
            'cancellation_source',
            'cancellation_reason',
            'refund_amount',
            'hold_expires_at',
            'updated_at',
        ])

        uow.record(BookingCancelled(
            aggregate_id=booking.pk,
            booking_id=booking.pk,
            item_id=booking.item_id,
            source=source,
            reason=command.reason,
            old_status=old_status,
            refund_amount=Money(refund_amount, booking.currency) if refund_amount > ZERO else None,
            payment_reference=booking.payment_reference,
        ))


class PayBookingHandler(EngineHandler):
    """
    Capture payment for a booking

    A pending booking is charged its total and confirmed. A declined
    capture returns PaymentFailed and the booking stays pending, still
    holding stock until the hold sweep. A total of zero (covered by promo
    or wallet credit) skips the gateway.

    A confirmed or active booking with a balance due (after an
    extension) is charged that balance and keeps its status.
    """

    def __init__(self, transitions: TransitionBookingHandler, gateway: PaymentGateway | None = None, **kwargs):
        super().__init__(**kwargs)
        self.transitions = transitions
        self.gateway = gateway

    def get_gateway(self) -> PaymentGateway:
        return self.gateway or get_payment_gateway()

    @translate_db_errors
    def handle(self, command: PayBookingCommand) -> Booking | BookingError:
        booking = self.bookings.get(command.booking_id)
        if booking is None:
            return NotFound('Booking', str(command.booking_id))

        if BookingStatus(booking.status) in (BookingStatus.CONFIRMED, BookingStatus.ACTIVE):
            return self._settle_balance(booking)

        check = next_status(booking.status, BookingEvent.PAYMENT_CAPTURED)
        if not check.allowed:
            return self._invalid(booking, BookingEvent.PAYMENT_CAPTURED, check.reason)

        amount = booking.balance_due
        reference = ''
        if amount <= ZERO:
            method = PaymentMethod.PROMO if booking.promo_code_id else PaymentMethod.WALLET
        else:
            charge = self._capture(booking, amount, f"Booking #{booking.booking_code}")
            if isinstance(charge, BookingError):
                return charge
            method = PaymentMethod.CARD
            reference = charge.reference

        result = self.transitions.handle(TransitionBookingCommand(
            booking_id=booking.pk,
            event=BookingEvent.PAYMENT_CAPTURED,
            actor_id=command.actor_id,
            payment_method=method,
            payment_reference=reference,
        ))

        if isinstance(result, BookingError) and amount > ZERO:
            # The hold lapsed while the capture was in flight
            self._refund_orphan(booking, amount, reference)

        return result

    def _settle_balance(self, booking) -> Booking | BookingError:
        amount = booking.balance_due
        if amount <= ZERO:
            return self._invalid(booking, BookingEvent.PAYMENT_CAPTURED, 'nothing is outstanding')

        charge = self._capture(booking, amount, f"Balance of booking #{booking.booking_code}")
        if isinstance(charge, BookingError):
            return charge

        error = None
        with DjangoUnitOfWork() as uow:
            booking = self.bookings.get(booking.pk, lock=True)
            if BookingStatus(booking.status) not in (BookingStatus.CONFIRMED, BookingStatus.ACTIVE):
                error = self._invalid(booking, BookingEvent.PAYMENT_CAPTURED, 'booking changed during capture')
            elif booking.balance_due < amount:
                error = self._invalid(booking, BookingEvent.PAYMENT_CAPTURED, 'balance changed during capture')
            else:
                booking.amount_paid = booking.amount_paid + amount
                booking.save(update_fields=['amount_paid', 'updated_at'])
                uow.record(BookingBalancePaid(
                    aggregate_id=booking.pk,
                    booking_id=booking.pk,
                    amount=Money(amount, booking.currency),
                    payment_reference=charge.reference,
                ))

        if error is not None:
            self._refund_orphan(booking, amount, charge.reference)
            return error

        logger.info(f"Booking {booking.booking_code} balance of {amount} paid, {booking.amount_paid} paid in total")
        return booking

    def _capture(self, booking, amount, description):
        try:
            charge = self.get_gateway().capture(
                Money(amount, booking.currency),
                booking_id=booking.pk,
                description=description,
            )
        except PaymentGatewayError as e:
            return PaymentFailed(booking_id=booking.pk, reason=str(e))
        if not charge.succeeded:
            logger.warning(f"Payment for booking {booking.booking_code} declined: {charge.reason}")
            return PaymentFailed(booking_id=booking.pk, reason=charge.reason or 'declined')
        return charge

    def _refund_orphan(self, booking, amount, reference):
        logger.warning(f"Capture for booking {booking.booking_code} could not be applied, refunding {amount}")
        try:
            self.get_gateway().refund(booking.pk, Money(amount, booking.currency), reference=reference)
        except PaymentGatewayError as e:
            logger.error(f"Refund of orphaned capture for booking {booking.booking_code} failed: {e}")


class ExtendBookingHandler(EngineHandler):
    """
    Move a booking's end date later and re-price it

    Only the added days are checked for availability, since the booking
    already holds its current ones. The promo code keeps its terms
    without re-checking usage limits. A code that has since been
    deactivated or has expired can no longer grow the discount, which
    stays capped at what the booking already had.

    Crossing into the weekly rate can make the longer rental cheaper.
    Wallet credit the new total no longer absorbs goes back to the
    wallet, and a paid amount above the new total is refunded after
    commit.
    """

    @translate_db_errors
    def handle(self, command: ExtendBookingCommand) -> Booking | BookingError:
        config = self.get_config()
        current = self.bookings.get(command.booking_id)
        if current is None:
            return NotFound('Booking', str(command.booking_id))

        with DjangoUnitOfWork() as uow:
            item = self.items.get(current.item_id, lock=True)
            booking = self.bookings.get(command.booking_id, lock=True)

            if BookingStatus(booking.status) not in HOLDING_STATUSES:
                return self._invalid(booking, 'extend', 'only pending, confirmed or active bookings can be extended')
            if command.new_end_date <= booking.end_date:
                return InvalidDateRange(
                    booking.start_date,
                    command.new_end_date,
                    "New end date must be after the current end date",
                )

            added = DateRange(booking.end_date + timedelta(days=1), command.new_end_date)
            availability = self._availability(
                item,
                added,
                booking.quantity,
                config.buffer_days,
                exclude_id=booking.pk,
            )
            if not availability.available:
                return InsufficientInventory(item.pk, booking.quantity, availability.remaining_on_worst_day)

            promo_check = self._promo_check(booking) if booking.promo_code_id else None
            breakdown = price_rental(
                item.rate_card(),
                DateRange(booking.start_date, command.new_end_date),
                booking.quantity,
                promo_check=promo_check,
                wallet_credit=booking.wallet_credit_applied,
                tax_rate=config.tax_rate,
                currency=booking.currency,
            )
            if isinstance(breakdown, BookingError):
                return breakdown

            old_end_date = booking.end_date
            old_total = booking.total_amount
            new_total = breakdown.amount_due(booking.deposit_mode)
            credit_released = booking.wallet_credit_applied - breakdown.wallet_credit_applied
            overpaid = ZERO
            if booking.payment_status == PaymentStatus.PAID.value and booking.amount_paid > new_total:
                overpaid = booking.amount_paid - new_total

            booking.end_date = command.new_end_date
            booking.total_days = breakdown.total_days
            booking.daily_rate_used = breakdown.daily_rate_used.quantize(RATE_PRECISION)
            booking.subtotal = breakdown.subtotal
            booking.discount_amount = breakdown.discount_amount
            booking.tax = breakdown.tax
            booking.damage_deposit = breakdown.damage_deposit
            booking.wallet_credit_applied = breakdown.wallet_credit_applied
            booking.total_amount = new_total
            booking.amount_paid = booking.amount_paid - overpaid
            booking.refund_amount = booking.refund_amount + overpaid
            booking.extended_at = self.clock.now()
            booking.extended_by_id = command.actor_id
            booking.extension_reason = command.reason[:255]
            booking.save()

            if credit_released > ZERO:
                wallet.credit(
                    booking.renter,
                    credit_released,
                    kind=WalletTransaction.Kind.BOOKING_RESTORE,
                    booking=booking,
                    description=f"Credit released by extension of booking #{booking.booking_code}",
                )

            if booking.promo_code_id:
                booking.promo_code.redemptions.filter(booking=booking).update(
                    discount_applied=breakdown.discount_amount,
                )

            uow.record(BookingExtended(
                aggregate_id=booking.pk,
                booking_id=booking.pk,
                old_end_date=old_end_date.isoformat(),
                new_end_date=booking.end_date.isoformat(),
                old_total=old_total,
                new_total=booking.total_amount,
                credit_released=max(credit_released, ZERO),
                refund_amount=Money(overpaid, booking.currency) if overpaid > ZERO else None,
                payment_reference=booking.payment_reference,
            ))

        logger.info(
            f"Booking {booking.booking_code} extended from {old_end_date} to {booking.end_date}, "
            f"total {old_total} -> {booking.total_amount}"
        )
        return booking

    def _promo_check(self, booking):
        terms = booking.promo_code.terms()
        lapsed = window_rejection(terms, self.clock.now())
        honoured = booking.discount_amount
        if lapsed is not None:
            logger.info(
                f"Promo code {terms.code} is {lapsed.value}; booking {booking.booking_code} "
                f"keeps at most its {honoured} discount"
            )

        def check(subtotal) -> ValidationResult:
            discount, credit = compute_discount(terms, subtotal)
            if lapsed is not None:
                discount, credit = min(discount, honoured), ZERO
            return ValidationResult(valid=True, discount_amount=discount, credit_amount=credit, code=terms.code)

        return check


class ExpireHoldsHandler(EngineHandler):
    """Cancel pending bookings whose payment window has lapsed"""

    def __init__(self, transitions: TransitionBookingHandler, **kwargs):
        super().__init__(**kwargs)
        self.transitions = transitions

    @translate_db_errors
    def handle(self, command: ExpireHoldsCommand) -> int:
        due = list(
            Booking.objects.filter(
                status=BookingStatus.PENDING.value,
                hold_expires_at__lte=self.clock.now(),
            ).values_list('pk', flat=True)
        )

        expired = 0
        for booking_id in due:
            result = self.transitions.handle(TransitionBookingCommand(
                booking_id=booking_id,
                event=BookingEvent.HOLD_EXPIRED,
                source=Booking.CancellationSource.SYSTEM,
                reason='Payment window expired',
            ))
            if not isinstance(result, BookingError):
                expired += 1

        if expired:
            logger.info(f"Expired {expired} pending booking(s)")
        return expired


class ActivateDueBookingsHandler(EngineHandler):
    """Mark confirmed bookings as picked up once their start date arrives"""

    def __init__(self, transitions: TransitionBookingHandler, **kwargs):
        super().__init__(**kwargs)
        self.transitions = transitions

    @translate_db_errors
    def handle(self, command: ActivateDueBookingsCommand) -> int:
        due = list(
            Booking.objects.filter(
                status=BookingStatus.CONFIRMED.value,
                start_date__lte=self.clock.today(),
            ).values_list('pk', flat=True)
        )

        activated = 0
        for booking_id in due:
            result = self.transitions.handle(TransitionBookingCommand(
                booking_id=booking_id,
                event=BookingEvent.PICKED_UP,
                source=Booking.CancellationSource.SYSTEM,
            ))
            if not isinstance(result, BookingError):
                activated += 1

        if activated:
            logger.info(f"Activated {activated} booking(s) due for pickup")
        return activated


def build_handlers(
    clock: Clock = system_clock,
    gateway: PaymentGateway | None = None,
    config: EngineConfig | None = None,
) -> dict:
    """Wire every command and query type to its handler"""
    common = {'clock': clock, 'config': config}
    transitions = TransitionBookingHandler(**common)
    confirm = ConfirmBookingHandler(**common)
    return {
        QuoteQuery: QuoteHandler(**common),
        CheckAvailabilityQuery: CheckAvailabilityHandler(**common),
        AvailabilityCalendarQuery: AvailabilityCalendarHandler(**common),
        ValidatePromoQuery: ValidatePromoHandler(**common),
        ConfirmBookingCommand: confirm,
        CheckoutCommand: CheckoutHandler(confirm, **common),
        TransitionBookingCommand: transitions,
        PayBookingCommand: PayBookingHandler(transitions, gateway=gateway, **common),
        ExtendBookingCommand: ExtendBookingHandler(**common),
        ExpireHoldsCommand: ExpireHoldsHandler(transitions, **common),
        ActivateDueBookingsCommand: ActivateDueBookingsHandler(transitions, **common),
    }


@functools.lru_cache(maxsize=None)
def default_handlers() -> dict:
    return build_handlers()


def register_handlers(bus) -> None:
    for command_type, handler in default_handlers().items():
        bus.register_command_handler(command_type, handler)
