from taxograph.cli import main

main()
