from openapi_adapter.models import (
    OperationDescriptor,
    ParameterDescriptor,
    ParameterLocation,
    RequestBodyDescriptor,
)
from openapi_adapter.routing import classify


class TestClassify:
    def test_post_with_json_body(self, post_item_operation):
        routed = classify(
            post_item_operation, {"id": 7, "verbose": True, "X-Trace": "t1", "name": "Rex"}
        )
        assert routed.path == {"id": 7}
        assert routed.query == {"verbose": True}
        assert routed.header == {"X-Trace": "t1"}
        assert routed.body == {"name": "Rex"}
        assert routed.send_body is True

    def test_get_unmatched_keys_go_to_query(self, get_item_operation):
        routed = classify(get_item_operation, {"id": 7, "verbose": False, "extra": "x"})
        assert routed.path == {"id": 7}
        assert routed.query == {"verbose": False, "extra": "x"}
        assert routed.body == {}
        assert routed.send_body is False

    def test_post_without_json_body_sends_query(self):
        operation = OperationDescriptor(operation_id="ping", method="POST", path="/ping")
        routed = classify(operation, {"extra": 1})
        assert routed.query == {"extra": 1}
        assert routed.send_body is False

    def test_declared_parameter_wins_over_body(self, post_item_operation):
        routed = classify(post_item_operation, {"id": 3})
        assert routed.path == {"id": 3}
        assert "id" not in routed.body

    def test_missing_parameters_are_not_sent(self, post_item_operation):
        routed = classify(post_item_operation, {})
        assert routed.path == {}
        assert routed.query == {}
        assert routed.header == {}
        assert routed.body == {}
        assert routed.send_body is True

    def test_cookie_parameter_is_dropped(self):
        operation = OperationDescriptor(
            operation_id="getSession",
            method="GET",
            path="/session",
            parameters=[ParameterDescriptor("session", ParameterLocation.COOKIE)],
        )
        routed = classify(operation, {"session": "abc"})
        assert routed.query == {}
        assert routed.header == {}

    def test_lowercase_get_method(self, get_item_operation):
        operation = OperationDescriptor(
            operation_id="getItem",
            method="get",
            path=get_item_operation.path,
            parameters=get_item_operation.parameters,
        )
        routed = classify(operation, {"other": 1})
        assert routed.query == {"other": 1}

    def test_same_input_on_get_and_post(self, post_item_operation):
        flat_input = {"id": "42", "verbose": True, "X-Trace": "abc", "extra": "z"}
        get_operation = OperationDescriptor(
            operation_id="getItem",
            method="GET",
            path=post_item_operation.path,
            parameters=post_item_operation.parameters,
        )

        posted = classify(post_item_operation, flat_input)
        fetched = classify(get_operation, flat_input)

        assert (posted.path, posted.query, posted.header, posted.body) == (
            {"id": "42"},
            {"verbose": True},
            {"X-Trace": "abc"},
            {"extra": "z"},
        )
        assert (fetched.path, fetched.query, fetched.header, fetched.body) == (
            {"id": "42"},
            {"verbose": True, "extra": "z"},
            {"X-Trace": "abc"},
            {},
        )
        assert list(fetched.query) == ["verbose", "extra"]

    def test_declared_header_wins_over_body_property(self):
        operation = OperationDescriptor(
            operation_id="updateItem",
            method="PUT",
            path="/items",
            parameters=[ParameterDescriptor("X-Trace", ParameterLocation.HEADER)],
            request_body=RequestBodyDescriptor(
                content={
                    "application/json": {
                        "type": "object",
                        "properties": {"X-Trace": {"type": "string"}, "name": {"type": "string"}},
                    }
                }
            ),
        )
        routed = classify(operation, {"X-Trace": "abc", "name": "Rex"})
        assert routed.header == {"X-Trace": "abc"}
        assert routed.body == {"name": "Rex"}
