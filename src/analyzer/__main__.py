from src.analyzer.cli import main

main()
