from agent_harness.cli import main

main()
