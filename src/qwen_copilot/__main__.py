import sys

from qwen_copilot.cli import main

if __name__ == "__main__":
    sys.exit(main())
