from __future__ import annotations

import pytest

from conftest import StubRider

from groupcontrol import DeliveryRequest, PickupRequest, RequestQueue, RequestType, make_request
from liftbank import RiderState


class TestRequests:
    def test_delivery_needs_destination(self):
        with pytest.raises(ValueError):
            DeliveryRequest(floor=3, going_up=True, requested_at=0.0)

    def test_delivery_targets_its_destination(self):
        request = make_request(RequestType.DELIVER, 3, True, 0.0, dest_floor=8)
        assert isinstance(request, DeliveryRequest)
        assert request.target_floor == 8

    def test_pickup_targets_its_floor(self):
        request = make_request("pickup", 3, True, 0.0, dest_floor=8)
        assert isinstance(request, PickupRequest)
        assert request.target_floor == 3
        assert request.age(4.5) == 4.5


class TestRequestQueue:
    def test_fifo_order(self):
        queue = RequestQueue()
        first = PickupRequest(floor=2, going_up=True, requested_at=0.0)
        second = PickupRequest(floor=5, going_up=False, requested_at=0.0)
        queue.admit(first)
        queue.admit(second)
        assert queue.pop() is first
        assert queue.pop() is second
        assert queue.pop() is None

    def test_anonymous_hall_calls_are_deduplicated(self):
        queue = RequestQueue()
        assert queue.admit(PickupRequest(floor=4, going_up=True, requested_at=0.0))
        assert not queue.admit(PickupRequest(floor=4, going_up=True, requested_at=1.0))
        assert queue.admit(PickupRequest(floor=4, going_up=False, requested_at=1.0))
        assert len(queue) == 2

    def test_rider_bound_requests_are_always_admitted(self):
        queue = RequestQueue()
        queue.admit(PickupRequest(floor=4, going_up=True, requested_at=0.0))
        rider = StubRider(4, 9)
        assert queue.admit(PickupRequest(floor=4, going_up=True, requested_at=0.0, rider=rider))
        assert queue.admit(PickupRequest(floor=4, going_up=True, requested_at=0.0, rider=rider))
        assert len(queue) == 3

    def test_requests_expire_after_timeout(self):
        queue = RequestQueue(timeout=30.0)
        old = PickupRequest(floor=4, going_up=True, requested_at=0.0)
        fresh = PickupRequest(floor=6, going_up=True, requested_at=10.0)
        queue.admit(old)
        queue.admit(fresh)

        assert queue.purge(30.0) == []
        assert queue.purge(30.5) == [old]
        assert list(queue) == [fresh]

    def test_requests_expire_once_their_rider_boards(self):
        queue = RequestQueue()
        rider = StubRider(4, 9)
        request = PickupRequest(floor=4, going_up=True, requested_at=0.0, rider=rider)
        queue.admit(request)
        rider.state = RiderState.BOARDING
        assert queue.purge(1.0) == [request]
        assert len(queue) == 0

    def test_requeue_moves_to_the_back(self):
        queue = RequestQueue()
        first = PickupRequest(floor=2, going_up=True, requested_at=0.0)
        second = PickupRequest(floor=3, going_up=True, requested_at=0.0)
        queue.admit(first)
        queue.admit(second)
        queue.requeue(queue.pop())
        assert list(queue) == [second, first]
