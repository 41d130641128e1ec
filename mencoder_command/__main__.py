from mencoder_command.cli.main import main

main()
