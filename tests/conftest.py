# Copyright (c) Syntropy Systems
"""Pytest fixtures for krkn-analysis tests."""

import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest

BASELINE_YAML = """\
kubeconfig_file_path: ./kubeconfig.yaml
parameters:
  NAMESPACE: robot-shop
generations: 20
population_size: 10
wait_duration: 30
mutation_rate: 0.7
scenario_mutation_rate: 0.6
crossover_rate: 0.6
composition_rate: 0.0
population_injection_rate: 0.1
population_injection_size: 2
fitness_function:
  query: sum(kube_pod_container_status_restarts_total{namespace="robot-shop"})
  type: point
  include_krkn_failure: true
  include_health_check_failure: true
  include_health_check_response_time: false
  items: []
health_checks:
  stop_watcher_on_failure: false
  applications:
  - name: cart
    url: http://cart.example.com/health
    status_code: 200
    timeout: 4
    interval: 2
  - name: catalogue
    url: http://catalogue.example.com/health
    status_code: 200
    timeout: 10
    interval: 5
scenario:
  pod_scenarios:
    enable: true
  node_cpu_hog:
    enable: true
  network_scenarios:
    enable: false
cluster_components:
  namespaces:
  - name: robot-shop
    pods:
    - cart-7d9f
  nodes:
  - name: worker-1
  - name: worker-2
output_dir: ./out
"""

ALL_CSV = """\
generation_id,scenario_id,scenario,cmd,fitness_score,krkn_failure_score,health_check_failure_score,health_check_response_time_score
0,1,pod-scenarios,krknctl run pod-scenarios --namespace robot-shop,1.5,0,0,0.1
0,2,node-cpu-hog,krknctl run node-cpu-hog --cores 2,3.2,0,1,0.2
1,3,pod-scenarios,krknctl run pod-scenarios --namespace robot-shop,2.0,-1,0,0
1,4,network-chaos,krknctl run network-chaos --latency 200ms,5.0,0,0,0.5
2,5,node-cpu-hog,krknctl run node-cpu-hog --cores 4,0.5,0,0,0
"""

HEALTH_CHECK_CSV = """\
scenario_id,component_name,min_response_time,max_response_time,average_response_time,success_count,failure_count
1,cart,0.01,0.2,0.05,10,0
2,cart,0.02,0.5,0.1,8,2
2,catalogue,0.01,0.1,0.03,10,0
"""


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def baseline_path(temp_dir: Path) -> Path:
    """Write a discovered krkn-ai baseline."""
    path = temp_dir / "krkn-ai.yaml"
    _ = path.write_text(BASELINE_YAML)
    return path


@pytest.fixture
def results_dir(temp_dir: Path) -> Path:
    """Create a krkn-ai output directory with reports, config and logs."""
    results = temp_dir / "results"
    reports = results / "reports"
    reports.mkdir(parents=True)
    _ = (reports / "all.csv").write_text(ALL_CSV)
    _ = (reports / "health_check_report.csv").write_text(HEALTH_CHECK_CSV)
    _ = (results / "krkn-ai.yaml").write_text(BASELINE_YAML)

    log_dir = results / "log"
    log_dir.mkdir()
    _ = (log_dir / "scenario_1.log").write_text(
        "".join(f"pod-scenarios line {i}\n" for i in range(1, 11))
    )
    _ = (log_dir / "scenario_2.log").write_text("node-cpu-hog started\nhealth check failed: cart\n")
    return results
