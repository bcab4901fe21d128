from llvmrel.cli.app import main

main()
