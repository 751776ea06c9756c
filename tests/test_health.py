from fastapi.testclient import TestClient

from gateway.core.config import read_config
from gateway.core.env import MappingEnv
from gateway.core.metrics import GatewayMetrics
from gateway.main import app, create_app


client = TestClient(app)


def test_health():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_ready_reports_capabilities():
    config = read_config(
        MappingEnv(
            {
                "functions_provider_url": "http://provider:8080",
                "faas_nats_address": "nats",
                "faas_nats_port": "4222",
            }
        )
    )
    response = TestClient(create_app(config)).get("/ready")
    assert response.status_code == 200
    assert response.json() == {
        "status": "ready",
        "external_provider": True,
        "messaging": True,
        "scale_from_zero": False,
    }


def test_metrics():
    metrics = GatewayMetrics()
    metrics.record_invocation("echo", 200)
    metrics.set_service_count("echo", 2)

    response = TestClient(create_app(read_config(MappingEnv()), metrics)).get("/metrics")
    assert response.status_code == 200
    assert 'gateway_function_invocation_total{function_name="echo",code="200"} 1.0' in response.text
    assert 'gateway_service_count{function_name="echo"} 2.0' in response.text
