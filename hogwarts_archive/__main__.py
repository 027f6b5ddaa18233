from hogwarts_archive.main import main

main()
