from automacro.main import main

main()
