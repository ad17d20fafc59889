"""
Tests for next_contract_status.

Covers the expiring window boundaries, expiry, the extension revert, and
that cancelled/expired contracts are never moved by the calendar.
"""

from datetime import date, timedelta

import pytest

from lease_kernel.domain.contract_status import ContractStatus, next_contract_status

TODAY = date(2025, 1, 15)


class TestNextContractStatus:
    def test_active_within_horizon_becomes_expiring(self):
        end = TODAY + timedelta(days=15)
        assert next_contract_status(ContractStatus.ACTIVE, end, TODAY) is ContractStatus.EXPIRING

    def test_horizon_end_is_inclusive(self):
        end = TODAY + timedelta(days=30)
        assert next_contract_status(ContractStatus.ACTIVE, end, TODAY) is ContractStatus.EXPIRING

    def test_beyond_horizon_stays_active(self):
        end = TODAY + timedelta(days=31)
        assert next_contract_status(ContractStatus.ACTIVE, end, TODAY) is ContractStatus.ACTIVE

    def test_ending_today_is_not_yet_expiring_or_expired(self):
        assert next_contract_status(ContractStatus.ACTIVE, TODAY, TODAY) is ContractStatus.ACTIVE

    @pytest.mark.parametrize("status", [ContractStatus.ACTIVE, ContractStatus.EXPIRING])
    def test_past_end_date_expires(self, status):
        yesterday = TODAY - timedelta(days=1)
        assert next_contract_status(status, yesterday, TODAY) is ContractStatus.EXPIRED

    def test_extended_expiring_contract_returns_to_active(self):
        end = TODAY + timedelta(days=200)
        assert next_contract_status(ContractStatus.EXPIRING, end, TODAY) is ContractStatus.ACTIVE

    @pytest.mark.parametrize("status", [ContractStatus.CANCELLED, ContractStatus.EXPIRED])
    @pytest.mark.parametrize("offset", [-100, -1, 0, 15, 400])
    def test_terminal_statuses_never_move(self, status, offset):
        end = TODAY + timedelta(days=offset)
        assert next_contract_status(status, end, TODAY) is status

    def test_custom_horizon(self):
        end = TODAY + timedelta(days=45)
        assert next_contract_status(
            ContractStatus.ACTIVE, end, TODAY, horizon_days=60,
        ) is ContractStatus.EXPIRING
