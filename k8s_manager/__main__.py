"""Allow running the tool as a module: python -m k8s_manager"""

from k8s_manager.cli import main

if __name__ == "__main__":
    main()
