"""Run the gitopssets command line tool as a module."""

from gitopssets.tool.gitopssets import main

if __name__ == "__main__":
    main()
