"""
Command line entry point.

    python -m recursive_cognition demo [--seed N] [--json-logs]
    python -m recursive_cognition serve [--host H] [--port P] [--mythos-url URL]
"""
import argparse
import json
import sys
from typing import List, Optional

from recursive_cognition.config import EngineConfig
from recursive_cognition.engine import RecursiveCognitionEngine
from recursive_cognition.frameworks import default_registry
from recursive_cognition.logging_config import get_logger, setup_logging, setup_logging_from_env
from recursive_cognition.models import Stimulus
from recursive_cognition.mythos_memory import (
    HistoricalClaim,
    HttpMythosMemory,
    InMemoryMythosMemory,
    ProvenanceData,
)

logger = get_logger(__name__)


def demo_memory() -> InMemoryMythosMemory:
    return InMemoryMythosMemory(claims=[
        HistoricalClaim(
            claim_id="hippocratic-oath",
            narrative="Physicians swear to abstain from whatever is harmful",
            source="Corpus Hippocraticum",
            context_tags=("medicine", "ethics"),
            provenance=ProvenanceData(
                document_id="doc-hippocratic",
                author_id="archive",
                timestamp=1700000000,
                signature="sig-hippocratic",
            ),
        ),
    ])


def demo_stimulus() -> Stimulus:
    return Stimulus(
        id="demo-triage",
        content="Recommend deferring treatment for a low-priority patient to free an ICU bed",
        stakeholders=frozenset({"patients", "clinicians"}),
        metadata={"source": "demo", "claims": "hippocratic-oath"},
        signals={
            "benefit": 0.7,
            "harm": 0.4,
            "rights_violation": 0.6,
            "consent": 0.2,
            "wellbeing": 0.3,
            "cultural_respect": 0.5,
        },
    )


def run_demo(args: argparse.Namespace) -> int:
    engine = RecursiveCognitionEngine(
        default_registry(),
        memory=demo_memory(),
        config=EngineConfig.from_env(),
    )
    outcome = engine.run(demo_stimulus(), seed=args.seed)
    print(json.dumps(outcome.to_dict(), indent=2, default=str))
    return 0


def run_server(args: argparse.Namespace) -> int:
    import uvicorn

    from recursive_cognition.api import create_app

    memory = HttpMythosMemory(args.mythos_url) if args.mythos_url else demo_memory()
    engine = RecursiveCognitionEngine(
        default_registry(),
        memory=memory,
        config=EngineConfig.from_env(),
    )
    logger.info("server_starting", host=args.host, port=args.port, mythos_url=args.mythos_url)
    uvicorn.run(create_app(engine), host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="recursive_cognition")
    parser.add_argument("--log-level", default=None, help="defaults to RCE_LOG_LEVEL or INFO")
    parser.add_argument("--json-logs", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    demo = sub.add_parser("demo", help="Run one cycle on a built-in stimulus")
    demo.add_argument("--seed", type=int, default=0)
    demo.set_defaults(handler=run_demo)

    serve = sub.add_parser("serve", help="Start the operator API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--mythos-url", default=None)
    serve.set_defaults(handler=run_server)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.log_level is None and not args.json_logs:
        setup_logging_from_env()
    else:
        setup_logging(level=args.log_level or "INFO", json_logs=args.json_logs)
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
