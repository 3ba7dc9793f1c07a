from sheets_loader.runner import main

main()
