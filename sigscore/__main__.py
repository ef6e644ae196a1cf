from sigscore.cli.main import main

main()
