"""
Unit tests for the request approval status rules
"""
import pytest

from eservice.models.request import ApprovalAction
from eservice.services.request_workflow import calculate_overall_status, decision_status


@pytest.mark.parametrize("by_staff,by_manager,expected", [
    ("pending", "pending", "pending"),
    ("approved", "pending", "pending"),
    ("approved", "approved", "approved"),
    ("rejected", "rejected", "rejected"),
    ("approved", "rejected", "pending"),
    ("rejected", "approved", "pending"),
    ("rejected", "pending", "pending"),
])
def test_calculate_overall_status(by_staff, by_manager, expected):
    assert calculate_overall_status(by_staff, by_manager) == expected


def test_decision_status():
    assert decision_status(ApprovalAction.APPROVE) == "approved"
    assert decision_status("approve") == "approved"
    assert decision_status(ApprovalAction.REJECT) == "rejected"
    assert decision_status("reject") == "rejected"
