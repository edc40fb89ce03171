from datetime import datetime, timezone
from unittest.mock import Mock

import pytest
from dependency_injector import providers
from fastapi.testclient import TestClient

from ledgerapi.core.auth_middleware import get_current_user
from ledgerapi.core.exceptions import DuplicatePendingOrderError, OrderAlreadyProcessedError
from ledgerapi.main import create_app
from ledgerapi.schemas.order import ApproveOrderResponse, OrderSchema
from ledgerapi.schemas.user import User

ADMIN_HEADERS = {"X-Admin-Token": "test-admin-token", "X-Admin-Id": "99"}


def make_order(**overrides):
    fields = dict(
        id=1,
        order_no="C1700000000000ABC123",
        user_id=1,
        item_type="coin_package",
        item_id="coins_500",
        coins=550,
        amount=5000,
        status="pending",
        remark_code="0420",
        created_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
    )
    fields.update(overrides)
    return OrderSchema(**fields)


@pytest.fixture
def order_service():
    return Mock()


@pytest.fixture
def client(order_service):
    """주문 서비스를 Mock 으로 교체한 테스트 클라이언트"""
    app = create_app()
    app.container.services.order_service.override(providers.Object(order_service))
    app.dependency_overrides[get_current_user] = lambda: User(id=1, nickname="tester")
    yield TestClient(app)
    app.container.services.order_service.reset_override()


class TestUserOrderRoutes:
    """사용자 주문 라우터"""

    def test_create_coin_order(self, client, order_service):
        order_service.create_coin_order.return_value = make_order()

        response = client.post(
            "/orders/coin", json={"package_id": "coins_500", "price": 5000, "payment_type": "alipay"}
        )

        assert response.status_code == 200
        assert response.json()["coins"] == 550
        order_service.create_coin_order.assert_called_once_with(
            1, "coins_500", payment_type="alipay", agent_id=None, expected_price=5000
        )

    def test_duplicate_pending_order_is_conflict(self, client, order_service):
        order_service.create_coin_order.side_effect = DuplicatePendingOrderError()

        response = client.post("/orders/coin", json={"package_id": "coins_500"})

        assert response.status_code == 409
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "DUPLICATE_PENDING_ORDER"

    def test_submit_proof(self, client, order_service):
        order_service.submit_proof.return_value = make_order(status="paid")

        response = client.post("/orders/1/proof", json={"screenshot": "https://img/p.png"})

        assert response.status_code == 200
        assert response.json()["status"] == "paid"

    def test_requires_user_header(self, order_service):
        app = create_app()
        app.container.services.order_service.override(providers.Object(order_service))

        response = TestClient(app).get("/orders/my")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTH_001"
        app.container.services.order_service.reset_override()


class TestAdminOrderRoutes:
    """관리자 주문 라우터"""

    def test_admin_token_required(self, client, order_service):
        response = client.post("/orders/admin/1/approve")

        assert response.status_code == 403
        order_service.approve_order.assert_not_called()

    def test_wrong_admin_token(self, client, order_service):
        response = client.post("/orders/admin/1/approve", headers={"X-Admin-Token": "nope"})

        assert response.status_code == 403

    def test_approve(self, client, order_service):
        order_service.approve_order.return_value = ApproveOrderResponse(
            order=make_order(status="approved", reviewed_by=99), credited=True
        )

        response = client.post("/orders/admin/1/approve", headers=ADMIN_HEADERS)

        assert response.status_code == 200
        assert response.json()["credited"] is True
        order_service.approve_order.assert_called_once_with(1, 99)

    def test_second_approve_is_conflict(self, client, order_service):
        order_service.approve_order.side_effect = OrderAlreadyProcessedError(details={"order_id": 1})

        response = client.post("/orders/admin/1/approve", headers=ADMIN_HEADERS)

        assert response.status_code == 409
        assert response.json()["error"] == {
            "code": "ORDER_ALREADY_PROCESSED",
            "message": "Order has already been processed",
            "details": {"order_id": 1},
        }
