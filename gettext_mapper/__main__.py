from gettext_mapper.scripts.cli import main

if __name__ == "__main__":
    main()
