"""
Command-line entrypoint for scheduled agent runs.

    agent-runner --run_id=<AgentRun id> --agent_name=<agent> [--params_json='{"dry_run": true}']

Exit codes: 0 on success, 1 on missing env, missing or unrecognized args,
a failed running/success write, or agent failure.
"""
import argparse
import json
import logging
import os
import sys

from agent_runner.agents.base import AgentContext
from agent_runner.config import ConfigurationError, Settings
from agent_runner.dispatcher import AGENT_REGISTRY, Dispatcher, parse_params
from agent_runner.logging_config import configure_logging
from agent_runner.services.entities import EntityClient

logger = logging.getLogger('agent_runner.cli')


class RunnerArgumentParser(argparse.ArgumentParser):
    """Reports bad arguments as ConfigurationError so main() can exit 1 instead of argparse's 2."""

    def error(self, message):
        raise ConfigurationError(f"{self.prog}: {message}")


def build_parser() -> argparse.ArgumentParser:
    parser = RunnerArgumentParser(
        prog='agent-runner',
        description='Run one scheduled agent and record its AgentRun lifecycle.',
    )
    parser.add_argument('--run_id', '--run-id', dest='run_id', help='AgentRun record id')
    parser.add_argument(
        '--agent_name', '--agent-name', dest='agent_name',
        help=f"Agent to run ({', '.join(sorted(AGENT_REGISTRY))})",
    )
    parser.add_argument(
        '--params_json', '--params-json', dest='params_json', default='{}',
        help='JSON object of agent parameters (malformed JSON is treated as {})',
    )
    return parser


def main(argv=None, environ=None) -> int:
    env = os.environ if environ is None else environ
    configure_logging(env)

    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except ConfigurationError as e:
        logger.error("%s", e)
        parser.print_usage(sys.stderr)
        return 1

    try:
        settings = Settings.from_env(env)
    except ConfigurationError as e:
        logger.error("%s", e)
        return 1

    if not args.run_id or not args.agent_name:
        logger.error("Missing required args: --run_id, --agent_name")
        return 1

    params = parse_params(args.params_json)
    ctx = AgentContext(settings=settings, store=EntityClient(settings))

    outcome = Dispatcher(ctx).execute(args.run_id, args.agent_name, params)
    if outcome.ok:
        print(json.dumps(outcome.outputs, default=str))
    return outcome.exit_code


def run():
    sys.exit(main())
