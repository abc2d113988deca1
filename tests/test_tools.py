"""Tests for the built-in tools, called through the default registry."""
import json

import httpx
import pytest
import respx

from toolrelay.core.errors import INTERNAL_ERROR, INVALID_PARAMS, InvalidArgumentsError, ToolError
from toolrelay.services.tools import ToolContext, load_builtin_tools

from helpers import CATALOG_URL, JIRA_URL

BUILTIN_TOOLS = {
    "add",
    "subtract",
    "multiply",
    "divide",
    "add_two_numbers",
    "get_current_time",
    "fetch_product",
    "fetch_all_products",
    "fetch_products_by_category",
    "search_products",
    "fetch_product_categories",
    "fetch_jira_issues",
}


@pytest.fixture(scope="module")
def builtin():
    return load_builtin_tools()


@pytest.fixture
def ctx(test_settings):
    return ToolContext(message_id="m1", session_id="s1", settings=test_settings)


def test_all_builtin_tools_registered(builtin):
    assert BUILTIN_TOOLS <= {t.name for t in builtin.get_all_tools()}
    for descriptor in builtin.list_descriptors():
        assert descriptor.description
        assert descriptor.inputSchema["type"] == "object"


# =========================================================================
# A. Arithmetic
# =========================================================================


class TestArithmetic:
    @pytest.mark.parametrize(
        "name, a, b, expected",
        [
            ("add", 2, 3, "5"),
            ("add", 2.5, 0.25, "2.75"),
            ("subtract", 10, 4, "6"),
            ("multiply", 1.5, 4, "6"),
            ("divide", 7, 2, "3.5"),
        ],
    )
    async def test_operations(self, builtin, name, a, b, expected):
        result = await builtin.call(name, {"a": a, "b": b})
        assert result.content[0].text == expected

    async def test_divide_by_zero(self, builtin):
        with pytest.raises(ToolError) as exc_info:
            await builtin.call("divide", {"a": 1, "b": 0})
        assert exc_info.value.code == INVALID_PARAMS

    async def test_add_two_numbers(self, builtin):
        result = await builtin.call("add_two_numbers", {"firstNumber": 1, "secondNumber": 2.5})
        assert result.content[0].text == "The sum of 1 and 2.5 is 3.5"

    async def test_rejects_non_numbers(self, builtin):
        with pytest.raises(InvalidArgumentsError):
            await builtin.call("add", {"a": "2", "b": 3})

    async def test_schema(self, builtin):
        schema = builtin.get_tool("add").input_schema
        assert schema["required"] == ["a", "b"]
        assert schema["properties"]["a"]["type"] == "number"


# =========================================================================
# B. Clock
# =========================================================================


class TestCurrentTime:
    async def test_detailed_is_default(self, builtin):
        result = await builtin.call("get_current_time", {})
        block = result.content[0]
        assert block.format == "json"
        assert {"iso", "local", "unix", "utc", "date", "time"} <= set(json.loads(block.text))

    async def test_unix(self, builtin):
        result = await builtin.call("get_current_time", {"format": "unix"})
        assert result.content[0].text.isdigit()

    async def test_iso(self, builtin):
        result = await builtin.call("get_current_time", {"format": "iso"})
        assert "T" in result.content[0].text

    async def test_unknown_format(self, builtin):
        with pytest.raises(InvalidArgumentsError, match="must be one of"):
            await builtin.call("get_current_time", {"format": "roman"})


# =========================================================================
# C. Product catalog
# =========================================================================


class TestProductTools:
    @respx.mock(base_url=CATALOG_URL)
    async def test_fetch_product(self, builtin, ctx, respx_mock):
        respx_mock.get("/products/1").respond(200, json={"id": 1, "title": "Phone"})
        result = await builtin.call("fetch_product", {"id": 1}, ctx)
        assert result.content[0].format == "json"
        assert json.loads(result.content[0].text) == {"id": 1, "title": "Phone"}

    @respx.mock(base_url=CATALOG_URL)
    async def test_fetch_product_not_found(self, builtin, ctx, respx_mock):
        respx_mock.get("/products/404").respond(404, json={"message": "Product with id '404' not found"})
        with pytest.raises(ToolError) as exc_info:
            await builtin.call("fetch_product", {"id": 404}, ctx)
        assert exc_info.value.code == INVALID_PARAMS

    @respx.mock(base_url=CATALOG_URL)
    async def test_catalog_outage(self, builtin, ctx, respx_mock):
        respx_mock.get("/products").mock(side_effect=httpx.ConnectError("refused"))
        with pytest.raises(ToolError) as exc_info:
            await builtin.call("fetch_all_products", {}, ctx)
        assert exc_info.value.code == INTERNAL_ERROR

    @respx.mock(base_url=CATALOG_URL)
    async def test_fetch_all_products(self, builtin, ctx, respx_mock):
        respx_mock.get("/products").respond(200, json={"products": [{"id": 1}], "total": 1})
        result = await builtin.call("fetch_all_products", {"limit": 1}, ctx)
        assert json.loads(result.content[0].text)["total"] == 1
        assert respx_mock.calls[0].request.url.params["limit"] == "1"

    @respx.mock(base_url=CATALOG_URL)
    async def test_fetch_products_by_category(self, builtin, ctx, respx_mock):
        respx_mock.get("/products/category/laptops").respond(200, json={"products": []})
        await builtin.call("fetch_products_by_category", {"category": "laptops", "limit": 3}, ctx)
        params = respx_mock.calls[0].request.url.params
        assert (params["skip"], params["limit"]) == ("0", "3")

    @respx.mock(base_url=CATALOG_URL)
    async def test_search_products(self, builtin, ctx, respx_mock):
        respx_mock.get("/products/search").respond(200, json={"products": [{"id": 9}]})
        result = await builtin.call("search_products", {"query": "lamp"}, ctx)
        assert json.loads(result.content[0].text) == {"products": [{"id": 9}]}
        assert respx_mock.calls[0].request.url.params["q"] == "lamp"

    @respx.mock(base_url=CATALOG_URL)
    async def test_fetch_product_categories(self, builtin, ctx, respx_mock):
        respx_mock.get("/products/categories").respond(200, json=["beauty"])
        result = await builtin.call("fetch_product_categories", {}, ctx)
        assert json.loads(result.content[0].text) == ["beauty"]


# =========================================================================
# D. Jira
# =========================================================================


class TestJiraTools:
    @respx.mock(base_url=JIRA_URL)
    async def test_fetch_jira_issues(self, builtin, ctx, respx_mock):
        respx_mock.get("/search").respond(
            200,
            json={"startAt": 0, "maxResults": 50, "total": 1, "issues": [{"key": "REL-1", "fields": {}}]},
        )
        result = await builtin.call("fetch_jira_issues", {"jql": "project = REL"}, ctx)
        data = json.loads(result.content[0].text)
        assert data["total"] == 1
        assert data["issues"][0]["key"] == "REL-1"
        assert respx_mock.calls[0].request.headers["authorization"].startswith("Basic ")

    @respx.mock(base_url=JIRA_URL)
    async def test_fetch_jira_issues_failure(self, builtin, ctx, respx_mock):
        respx_mock.get("/search").respond(401, text="Unauthorized")
        with pytest.raises(ToolError) as exc_info:
            await builtin.call("fetch_jira_issues", {"jql": "project = REL"}, ctx)
        assert exc_info.value.code == INTERNAL_ERROR
        assert exc_info.value.data == {"status": 401}

    async def test_fetch_jira_issues_unconfigured(self, builtin, test_settings):
        unconfigured = test_settings.model_copy(update={"jira_api_url": None})
        with pytest.raises(ToolError, match="not configured"):
            await builtin.call("fetch_jira_issues", {"jql": "x"}, ToolContext(message_id="m1", settings=unconfigured))
