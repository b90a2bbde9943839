from src.simulator.cli import main

main()
