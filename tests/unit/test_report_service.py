"""Unit tests for ReportService."""

import pytest

from tag_manager.clients.arm_client import UpstreamError
from tag_manager.models.resource import Subscription
from tag_manager.services.inventory_service import InventoryService
from tag_manager.services.report_service import ReportService

from helpers import SUB_1, SUB_2, make_resource

STORAGE = "Microsoft.Storage/storageAccounts"
VM = "Microsoft.Compute/virtualMachines"


@pytest.fixture
def report_service():
    return ReportService()


class TestTagCoverageReport:
    """Test tag coverage figures."""

    def test_coverage(self, report_service, sample_resources):
        report = report_service.tag_coverage_report(sample_resources)

        assert report.total_resources == 3
        assert report.tagged_resources == 2
        assert report.untagged_resources == 1
        assert report.coverage_percentage == 67

        vm = report.by_resource_type[VM]
        assert (vm.total, vm.tagged, vm.untagged, vm.percentage) == (2, 1, 1, 50)
        assert report.by_subscription[SUB_2].percentage == 0
        assert report.details is None

    def test_coverage_rounds_to_whole_percent(self, report_service):
        resources = [
            make_resource("a", {"Env": "x"}),
            make_resource("b"),
            make_resource("c"),
        ]

        report = report_service.tag_coverage_report(resources)

        assert report.coverage_percentage == 33
        assert isinstance(report.coverage_percentage, int)

    def test_common_tags_sorted_by_count(self, report_service, sample_resources):
        report = report_service.tag_coverage_report(sample_resources)

        assert [(t.key, t.count) for t in report.common_tags] == [
            ("Environment", 2),
            ("Owner", 1),
        ]
        assert report.common_tags[0].percentage == 67

    def test_common_tags_capped_at_ten(self, report_service):
        tags = {f"Key{i:02d}": "v" for i in range(15)}

        report = report_service.tag_coverage_report([make_resource("vm", tags)])

        assert len(report.common_tags) == 10

    def test_empty_input(self, report_service):
        report = report_service.tag_coverage_report([])

        assert report.total_resources == 0
        assert report.coverage_percentage == 100
        assert report.by_resource_type == {}
        assert report.common_tags == []

    def test_details(self, report_service, sample_resources):
        report = report_service.tag_coverage_report(
            sample_resources, subscription_filter=[SUB_1], include_details=True
        )

        assert report.subscription_filter == [SUB_1]
        assert [(d.name, d.tag_count) for d in report.details] == [
            ("vm-prod", 2),
            ("st-dev", 1),
            ("vm-untagged", 0),
        ]


class TestInventoryReport:
    def test_counts(self, report_service, sample_resources):
        report = report_service.inventory_report(sample_resources, {"location": "all"})

        assert report.total_resources == 3
        assert report.unique_resource_types == 2
        assert report.unique_locations == 1
        assert report.unique_resource_groups == 2
        assert report.by_resource_type == {VM: 2, STORAGE: 1}
        assert report.by_subscription == {SUB_1: 2, SUB_2: 1}
        assert report.filters == {"location": "all"}
        assert len(report.resources) == 3


class TestTagInventory:
    def test_keys_and_values(self, report_service):
        resources = [
            make_resource("a", {"Environment": "Prod", "Owner": "x@contoso.com"}),
            make_resource("b", {"Environment": "Dev"}),
            make_resource("c", {"Environment": "Prod"}),
            make_resource("d"),
        ]

        inventory = report_service.tag_inventory(resources)

        assert inventory.tags == {"Environment": ["Dev", "Prod"], "Owner": ["x@contoso.com"]}
        assert inventory.total_keys == 2
        assert inventory.resources_with_tags == 3
        assert inventory.resources_without_tags == 1


class TestCostBreakdown:
    """Test cost attribution."""

    def test_breakdown(self, report_service):
        resources = [
            make_resource("vm-prod", {"CostCenter": "CC-1"}),
            make_resource("vm-dev", {"Environment": "Dev"}),
            make_resource("st", type=STORAGE),
        ]
        costs = {
            resources[0].id.upper(): 60.0,
            resources[1].id: 30.0,
            resources[2].id: 10.0,
            "/subscriptions/x/unknown": 999.0,
        }

        report = report_service.cost_breakdown(resources, costs, ["CostCenter"])

        assert report.total_cost == 100.0
        assert report.tagged_cost == 90.0
        assert report.untagged_cost == 10.0
        assert report.tagged_percentage == 90.0
        assert report.untagged_percentage == 10.0

        groups = {g.name: g for g in report.by_tag["CostCenter"]}
        assert groups["CC-1"].cost == 60.0
        assert groups["Untagged"].cost == 40.0
        assert groups["Untagged"].resource_count == 2
        assert groups["Untagged"].percentage == 40.0

        assert [g.name for g in report.by_resource_type] == [VM, STORAGE]

    def test_percentages_round_to_one_decimal(self, report_service):
        resources = [make_resource("a", {"T": "x"}), make_resource("b"), make_resource("c")]
        costs = {r.id: 1.0 for r in resources}

        report = report_service.cost_breakdown(resources, costs, [])

        assert report.tagged_percentage == 33.3
        assert report.untagged_percentage == 66.7

    def test_no_costs(self, report_service):
        report = report_service.cost_breakdown([make_resource("a")], {}, ["Owner"])

        assert report.total_cost == 0.0
        assert report.tagged_percentage == 0.0
        assert report.by_tag["Owner"][0].name == "Untagged"


class TestGenerateReports:
    """Test the fetch-and-build helpers."""

    async def test_generate_coverage_for_all_subscriptions(self, mock_arm_client):
        mock_arm_client.list_subscriptions.return_value = [Subscription(subscription_id=SUB_1)]
        mock_arm_client.list_resources.return_value = [make_resource("a", {"Env": "x"})]
        service = ReportService(InventoryService(mock_arm_client))

        report = await service.generate_tag_coverage_report("tok")

        assert report.coverage_percentage == 100
        assert report.failed_subscriptions == []
        assert report.subscription_filter is None

    async def test_generate_inventory_filters_location(self, mock_arm_client):
        mock_arm_client.list_resources.return_value = [
            make_resource("a", location="westeurope"),
            make_resource("b", location="eastus"),
        ]
        service = ReportService(InventoryService(mock_arm_client))

        report = await service.generate_inventory_report("tok", SUB_1, location="eastus")

        assert report.total_resources == 1
        assert report.filters["location"] == "eastus"
        assert report.filters["resource_type"] == "all"

    async def test_generate_requires_inventory(self, report_service):
        with pytest.raises(RuntimeError):
            await report_service.get_tag_inventory("tok")

    async def test_generate_reports_list_failed_subscriptions(self, mock_arm_client):
        mock_arm_client.list_subscriptions.return_value = [
            Subscription(subscription_id=SUB_1),
            Subscription(subscription_id=SUB_2),
        ]

        async def list_resources(subscription_id, token, filters=None):
            if subscription_id == SUB_2:
                raise UpstreamError("Failed to list resources: HTTP 403", status=403)
            return [make_resource("a", {"Env": "x"}, subscription_id=SUB_1)]

        mock_arm_client.list_resources.side_effect = list_resources
        service = ReportService(InventoryService(mock_arm_client))

        coverage = await service.generate_tag_coverage_report("tok")
        inventory = await service.generate_inventory_report("tok")
        tags = await service.get_tag_inventory("tok")

        assert coverage.total_resources == 1
        assert coverage.failed_subscriptions == [SUB_2]
        assert inventory.failed_subscriptions == [SUB_2]
        assert tags.failed_subscriptions == [SUB_2]
        assert tags.tags == {"Env": ["x"]}
