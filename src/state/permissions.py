"""
Which role may do what. Mirrors the server's checks so the UI only
offers allowed actions.
"""

from typing import List

from api.models import Order, OrderStatus, UserRole

ORDER_CREATORS = {UserRole.STORE_USER, UserRole.ADMIN}
APPROVERS = {UserRole.APPROVER, UserRole.ADMIN}
ACCEPTORS = {UserRole.FULFILLMENT_AGENT, UserRole.ADMIN}
COURIER_EDITORS = {UserRole.APPROVER, UserRole.FULFILLMENT_AGENT, UserRole.ADMIN}
NOTIFICATION_READERS = {UserRole.STORE_USER, UserRole.APPROVER, UserRole.ADMIN}

ACTION_APPROVE = "approve"
ACTION_REJECT = "reject"
ACTION_ACCEPT = "accept"
ACTION_COURIER = "courier"


def can_create_orders(role: UserRole) -> bool:
    return role in ORDER_CREATORS


def can_manage_approvals(role: UserRole) -> bool:
    return role in APPROVERS


def can_view_notifications(role: UserRole) -> bool:
    return role in NOTIFICATION_READERS


def is_admin(role: UserRole) -> bool:
    return role == UserRole.ADMIN


def order_actions(order: Order, role: UserRole) -> List[str]:
    """Actions ``role`` may take on ``order`` in its current status."""
    actions: List[str] = []
    if role in APPROVERS and order.status == OrderStatus.PENDING_APPROVAL:
        actions += [ACTION_APPROVE, ACTION_REJECT]
    if role in ACCEPTORS and order.status == OrderStatus.APPROVED:
        actions.append(ACTION_ACCEPT)
    if (
        role in COURIER_EDITORS
        and order.status == OrderStatus.APPROVED
        and order.courier_info is None
    ):
        actions.append(ACTION_COURIER)
    return actions
