import json
import threading

import pytest
import requests

import coexpression.transport as transport_module
from coexpression.client import CoExpressionClient
from coexpression.errors import (
    ArgumentValidationError,
    AuthenticationError,
    ClientServerIncompatible,
    ConfigError,
    ErrorKind,
    HTTPError,
    JSONRPCError,
)
from coexpression.models import ConstCoexNetClustParams, FilterGenesParams

from conftest import SERVICE_URL, FakeSession, make_response

FILTER_PARAMS = {
    "ws_id": "plant_ws",
    "inobj_id": "series_1",
    "outobj_id": "series_1_filtered",
    "p_value": "0.05",
    "method": "anova",
    "num_genes": "100",
}

CLUST_PARAMS = {
    "ws_id": "plant_ws",
    "inobj_id": "series_1_filtered",
    "outobj_id": "clusters_1",
    "cut_off": "0.75",
    "net_method": "WGCNA",
    "clust_method": "hclust",
    "num_modules": "5",
}

OPERATIONS = ["filter_genes", "const_coex_net_clust"]


def make_client(session, token="secret-token", **kwargs):
    return CoExpressionClient(SERVICE_URL, token=token, session=session, **kwargs)


@pytest.mark.parametrize("operation", OPERATIONS)
@pytest.mark.parametrize("args", [(), (FILTER_PARAMS, FILTER_PARAMS)])
def test_wrong_argument_count_never_reaches_network(session, operation, args):
    client = make_client(session)
    with pytest.raises(ArgumentValidationError) as excinfo:
        getattr(client, operation)(*args)
    assert session.calls == []
    assert excinfo.value.method_name == operation
    assert f"received {len(args)}, expecting 1" in str(excinfo.value)
    assert excinfo.value.kind is ErrorKind.ARGUMENT_VALIDATION


@pytest.mark.parametrize("operation", OPERATIONS)
@pytest.mark.parametrize("bad", ["series_1", ["series_1"], 42])
def test_non_mapping_argument_rejected(session, operation, bad):
    client = make_client(session)
    with pytest.raises(ArgumentValidationError) as excinfo:
        getattr(client, operation)(bad)
    assert session.calls == []
    assert 'Invalid type for argument 1 "args"' in str(excinfo.value)


def test_filter_genes_returns_job_ids():
    session = FakeSession(make_response(body={"result": ["job-42"]}))
    client = make_client(session)
    assert client.filter_genes(FILTER_PARAMS) == ["job-42"]


def test_filter_genes_request_body(session):
    client = make_client(session)
    client.filter_genes(FILTER_PARAMS)

    call = session.calls[0]
    assert call["url"] == SERVICE_URL
    payload = session.last_payload
    assert payload["method"] == "CoExpression.filter_genes"
    assert payload["params"] == [FILTER_PARAMS]
    assert payload["version"] == "1.1"
    assert payload["id"]


def test_const_coex_net_clust_sends_method_and_params():
    session = FakeSession(make_response(body={"result": ["job-7", "job-8"]}))
    client = make_client(session)
    assert client.const_coex_net_clust(CLUST_PARAMS) == ["job-7", "job-8"]
    assert session.last_payload["method"] == "CoExpression.const_coex_net_clust"
    assert session.last_payload["params"] == [CLUST_PARAMS]


def test_typed_params_are_sent_as_strings(session):
    client = make_client(session)
    params = FilterGenesParams(
        ws_id="plant_ws",
        inobj_id="series_1",
        outobj_id="out",
        p_value=0.05,
        method="lor",
        num_genes=100,
    )
    client.filter_genes(params)
    sent = session.last_payload["params"][0]
    assert sent["p_value"] == "0.05"
    assert sent["num_genes"] == "100"


def test_caller_mapping_not_mutated(session):
    client = make_client(session)
    params = dict(FILTER_PARAMS)
    client.filter_genes(params)
    assert params == FILTER_PARAMS


def test_jsonrpc_error_translated():
    body = {"error": {"code": -32000, "message": "bad ws_id"}}
    session = FakeSession(make_response(body=body))
    client = make_client(session)
    with pytest.raises(JSONRPCError) as excinfo:
        client.filter_genes(FILTER_PARAMS)
    assert excinfo.value.code == -32000
    assert excinfo.value.message == "bad ws_id"
    assert excinfo.value.method_name == "filter_genes"


def test_jsonrpc_error_keeps_server_data():
    body = {
        "error": {
            "name": "JSONRPCError",
            "code": -32500,
            "message": "workspace object not found",
            "error": "Traceback (most recent call last): ...",
        }
    }
    session = FakeSession(make_response(status_code=500, body=body, reason="Internal Server Error"))
    client = make_client(session)
    with pytest.raises(JSONRPCError) as excinfo:
        client.const_coex_net_clust(CLUST_PARAMS)
    assert excinfo.value.code == -32500
    assert excinfo.value.data == "Traceback (most recent call last): ..."


def test_connection_failure_raises_http_error():
    session = FakeSession(exc=requests.ConnectionError("connection refused"))
    client = make_client(session)
    with pytest.raises(HTTPError) as excinfo:
        client.filter_genes(FILTER_PARAMS)
    assert excinfo.value.method_name == "filter_genes"
    assert "filter_genes" in str(excinfo.value)
    assert "connection refused" in excinfo.value.status_line


def test_non_json_server_error_raises_http_error_with_status_line():
    resp = make_response(
        status_code=502, raw=b"<html>Bad Gateway</html>", content_type="text/html", reason="Bad Gateway"
    )
    client = make_client(FakeSession(resp))
    with pytest.raises(HTTPError) as excinfo:
        client.const_coex_net_clust(CLUST_PARAMS)
    assert excinfo.value.status_line == "502 Bad Gateway"
    assert excinfo.value.method_name == "const_coex_net_clust"


def test_authorization_header_sent_with_token(session):
    client = make_client(session, token="secret-token")
    client.filter_genes(FILTER_PARAMS)
    client.const_coex_net_clust(CLUST_PARAMS)
    for call in session.calls:
        assert call["headers"]["Authorization"] == "secret-token"


def test_missing_token_fails_at_construction(session, empty_config):
    with pytest.raises(AuthenticationError):
        CoExpressionClient(SERVICE_URL, session=session, config=empty_config)
    assert session.calls == []


def test_token_from_environment(monkeypatch, session, empty_config):
    monkeypatch.setenv("KB_AUTH_TOKEN", "env-token")
    client = CoExpressionClient(SERVICE_URL, session=session, config=empty_config)
    client.filter_genes(FILTER_PARAMS)
    assert session.calls[0]["headers"]["Authorization"] == "env-token"


def test_missing_url_is_config_error(session, empty_config):
    with pytest.raises(ConfigError):
        CoExpressionClient(token="t", session=session, config=empty_config)


def test_default_timeout_is_thirty_minutes(session):
    client = make_client(session)
    client.filter_genes(FILTER_PARAMS)
    assert session.calls[0]["timeout"] == 1800


def test_timeout_environment_override(monkeypatch, session):
    monkeypatch.setenv("CDMI_TIMEOUT", "90")
    client = make_client(session)
    assert client.endpoint.timeout_s == 90
    client.filter_genes(FILTER_PARAMS)
    assert session.calls[0]["timeout"] == 90


def test_version_returns_first_result():
    session = FakeSession(make_response(body={"result": ["0.1.5"]}))
    client = make_client(session)
    assert client.version() == "0.1.5"
    assert session.last_payload["method"] == "CoExpression.version"
    assert session.last_payload["params"] == []


def test_version_error_reports_version_method():
    body = {"error": {"code": -32601, "message": "no such method"}}
    client = make_client(FakeSession(make_response(body=body)))
    with pytest.raises(JSONRPCError) as excinfo:
        client.version()
    assert excinfo.value.method_name == "version"
    assert excinfo.value.code == -32601


def test_close_only_closes_owned_session(session):
    client = make_client(session)
    client.close()
    assert session.closed is False


def test_builder_for_other_operation_rejected(session):
    client = make_client(session)
    clust = ConstCoexNetClustParams(
        ws_id="ws", inobj_id="in", outobj_id="out", cut_off=0.5,
        net_method="simple", clust_method="hclust", num_modules=5,
    )
    filt = FilterGenesParams(
        ws_id="ws", inobj_id="in", outobj_id="out", p_value=0.05, method="anova", num_genes=100,
    )
    with pytest.raises(ArgumentValidationError, match='Invalid type for argument 1 "args"'):
        client.filter_genes(clust)
    with pytest.raises(ArgumentValidationError, match='Invalid type for argument 1 "args"'):
        client.const_coex_net_clust(filt)
    assert session.calls == []


def test_mapping_values_sent_as_strings(session):
    client = make_client(session)
    client.filter_genes({**FILTER_PARAMS, "p_value": 0.01, "num_genes": 250})
    sent = session.last_payload["params"][0]
    assert sent["p_value"] == "0.01"
    assert sent["num_genes"] == "250"


def test_mapping_with_none_value_rejected(session):
    client = make_client(session)
    with pytest.raises(ArgumentValidationError, match="num_genes"):
        client.filter_genes({**FILTER_PARAMS, "num_genes": None})
    assert session.calls == []


def test_failed_version_check_closes_owned_session(monkeypatch):
    session = FakeSession(make_response(body={"result": ["1.0.0"]}))
    monkeypatch.setattr(transport_module, "configure_session", lambda: session)
    with pytest.raises(ClientServerIncompatible):
        CoExpressionClient(SERVICE_URL, token="t", validate_version=True)
    assert session.closed is True


class SplitSession(FakeSession):
    """filter_genes requests cannot connect; everything else answers 200."""

    def post(self, url, **kwargs):
        if json.loads(kwargs["data"])["method"] == "CoExpression.filter_genes":
            raise requests.ConnectionError("connection refused")
        return make_response(body={"result": ["0.1.0"]})


def test_concurrent_calls_keep_their_own_status_line():
    client = make_client(SplitSession())
    wrong = []

    def failing_calls():
        for _ in range(500):
            try:
                client.filter_genes(FILTER_PARAMS)
            except HTTPError as exc:
                if not exc.status_line.startswith("Connection failed"):
                    wrong.append(exc.status_line)

    def succeeding_calls():
        for _ in range(500):
            assert client.version() == "0.1.0"

    threads = [threading.Thread(target=failing_calls), threading.Thread(target=succeeding_calls)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert wrong == []
