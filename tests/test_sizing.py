"""Tests for buffer_controller/sizing.py"""

import pytest
from kubernetes import client

from buffer_controller.context import RequestContext
from buffer_controller.errors import SizingUnavailableError
from buffer_controller.sizing import buffer_size_gi, compute_buffer_size, is_worker, round_half_up
from conftest import make_node


class TestIsWorker:
    def test_worker(self):
        assert is_worker(make_node("n1"))

    def test_infra_and_worker_is_not_worker(self):
        assert not is_worker(make_node("n1", infra=True))

    def test_infra_only(self):
        assert not is_worker(make_node("n1", worker=False, infra=True))

    def test_no_role_labels(self):
        node = client.V1Node(metadata=client.V1ObjectMeta(name="n1"))
        assert not is_worker(node)


class TestBufferSize:
    @pytest.mark.parametrize(
        "memory, expected",
        [
            ("100Gi", 80),
            ("10Gi", 8),
            ("15Gi", 12),
            ("16777216Ki", 13),
            ("1Gi", 1),
        ],
    )
    def test_fraction_of_allocatable(self, memory, expected):
        assert buffer_size_gi([make_node("w", memory=memory)]) == expected

    def test_first_worker_in_inventory_order(self):
        nodes = [
            make_node("master", memory="8Gi", worker=False),
            make_node("infra", memory="64Gi", infra=True),
            make_node("worker-a", memory="10Gi"),
            make_node("worker-b", memory="100Gi"),
        ]
        assert buffer_size_gi(nodes) == 8

    def test_custom_ratio(self):
        assert buffer_size_gi([make_node("w", memory="10Gi")], ratio=0.5) == 5

    def test_empty_inventory(self):
        with pytest.raises(SizingUnavailableError):
            buffer_size_gi([])

    def test_only_infra_nodes(self):
        with pytest.raises(SizingUnavailableError):
            buffer_size_gi([make_node("infra", infra=True)])

    def test_worker_without_allocatable_memory(self):
        nodes = [make_node("worker-a", memory=None), make_node("worker-b", memory="100Gi")]
        with pytest.raises(SizingUnavailableError, match="worker-a"):
            buffer_size_gi(nodes)

    def test_worker_without_status(self):
        node = make_node("worker-a")
        node.status = None
        with pytest.raises(SizingUnavailableError):
            buffer_size_gi([node])

    def test_unparsable_allocatable_memory(self):
        with pytest.raises(SizingUnavailableError):
            buffer_size_gi([make_node("worker-a", memory="plenty")])


def test_round_half_up():
    assert round_half_up(12.5) == 13
    assert round_half_up(12.49) == 12
    assert round_half_up(8.0) == 8


def test_compute_buffer_size_lists_nodes_with_timeout(fake_api, cluster):
    assert compute_buffer_size(cluster, RequestContext(timeout=3)) == 80
    assert fake_api.calls == [("list_node", {"_request_timeout": 3})]
