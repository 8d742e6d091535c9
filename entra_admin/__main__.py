from entra_admin.cli import main

main()
