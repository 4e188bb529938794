from fstr.cli import main

main()
