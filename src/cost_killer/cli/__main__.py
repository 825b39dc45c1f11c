from cost_killer.cli.main import main

main()
