#!/usr/bin/env python3
from incsite.cli import main

if __name__ == "__main__":
    main()
