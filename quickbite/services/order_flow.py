"""Order status progression."""

PENDING_PAYMENT = 'pending_payment'
PAYMENT_SUBMITTED = 'payment_submitted'
CONFIRMED = 'confirmed'
READY = 'ready'
CLAIMED = 'claimed'
CANCELLED = 'cancelled'

FLOW = (PENDING_PAYMENT, PAYMENT_SUBMITTED, CONFIRMED, READY, CLAIMED)
ALL_STATUSES = FLOW + (CANCELLED,)
TERMINAL = (CLAIMED, CANCELLED)
STUDENT_CANCELLABLE = (PENDING_PAYMENT, PAYMENT_SUBMITTED)


class InvalidTransition(Exception):
    pass


def next_status(current):
    """The status after `current`, or None at the end of the flow"""
    if current not in FLOW:
        return None
    index = FLOW.index(current)
    return FLOW[index + 1] if index + 1 < len(FLOW) else None


def can_transition(current, target):
    if current in TERMINAL:
        return False
    if target == CANCELLED:
        return True
    return target == next_status(current)


def advance(order, target):
    """Move an order to `target`, refusing skips, reversals and terminal exits"""
    if target not in ALL_STATUSES:
        raise InvalidTransition(f'Unknown status: {target}')
    if not can_transition(order.status, target):
        raise InvalidTransition(f'Cannot move order from {order.status} to {target}')
    order.status = target
    return order
