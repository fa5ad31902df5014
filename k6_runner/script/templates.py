"""Built-in load test scenarios for the ``test <type>`` command.

Each template targets ``${__ENV.BASE_URL}/get`` and declares thresholds so
the engine's exit code reflects pass/fail. ``--vus`` and ``--duration``
given on the command line are forwarded to the engine, which lets them
override the template's stages.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..discovery.scanner import TestUnit

_SCRIPT_TEMPLATE = """import http from 'k6/http';
import {{ check, sleep }} from 'k6';

export const options = {{
  stages: [
{stages}
  ],
  thresholds: {{
    http_req_duration: ['p(95)<{p95_ms}'],
    http_req_failed: ['rate<{max_error_rate}'],
  }},
}};

export default function () {{
  const response = http.get(`${{__ENV.BASE_URL}}/get`);

  check(response, {{
    'status is 200': (r) => r.status === 200,
  }});

  sleep(1);
}}
"""


@dataclass(frozen=True)
class TestTemplate:
    """A built-in test scenario."""

    __test__ = False

    name: str
    description: str
    stages: tuple[tuple[str, int], ...]
    p95_ms: int = 500
    max_error_rate: float = 0.1

    def render(self) -> str:
        stages = "\n".join(
            f"    {{ duration: '{duration}', target: {target} }},"
            for duration, target in self.stages
        )
        return _SCRIPT_TEMPLATE.format(
            stages=stages,
            p95_ms=self.p95_ms,
            max_error_rate=self.max_error_rate,
        )

    def to_unit(self) -> TestUnit:
        return TestUnit(
            path=Path(f"<builtin>/{self.name}.js"),
            name=self.name,
            content=self.render(),
        )


TEMPLATES: dict[str, TestTemplate] = {
    "smoke": TestTemplate(
        name="smoke",
        description="Minimal load to verify the target works",
        stages=(("30s", 1),),
        p95_ms=1000,
        max_error_rate=0.01,
    ),
    "load": TestTemplate(
        name="load",
        description="Typical expected load",
        stages=(("1m", 10), ("3m", 20), ("1m", 0)),
    ),
    "stress": TestTemplate(
        name="stress",
        description="Load beyond normal capacity",
        stages=(("2m", 50), ("5m", 100), ("2m", 0)),
        p95_ms=1500,
        max_error_rate=0.2,
    ),
    "spike": TestTemplate(
        name="spike",
        description="Sudden short burst of traffic",
        stages=(("10s", 5), ("30s", 200), ("10s", 5), ("10s", 0)),
        p95_ms=2000,
        max_error_rate=0.2,
    ),
    "soak": TestTemplate(
        name="soak",
        description="Sustained load over a long period",
        stages=(("5m", 20), ("1h", 20), ("5m", 0)),
    ),
}


def get_template(name: str) -> Optional[TestTemplate]:
    """Look up a template by (case-insensitive) name."""
    return TEMPLATES.get(name.lower())


def engine_overrides(vus: Optional[int] = None, duration: Optional[str] = None) -> list[str]:
    """Engine arguments for ``--vus`` / ``--duration`` overrides."""
    args: list[str] = []
    if vus is not None:
        args += ["--vus", str(vus)]
    if duration:
        args += ["--duration", duration]
    return args
