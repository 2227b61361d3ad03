from agent_runner.cli import run

run()
