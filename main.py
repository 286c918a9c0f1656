#!/usr/bin/env python3
"""
Government Data Discovery
Main entry point for the application

Usage:
    python main.py --help                          # Show help
    python main.py seed                            # Load the sample catalogue
    python main.py search "aged care workforce"    # Search datasets
    python main.py interpret "compare income"      # Show query interpretation
    python main.py recommend related --dataset-id abs-labour-force
    python main.py datasets --agency ABS           # Browse the catalogue
    python main.py serve                           # Start the JSON API
    python main.py stats                           # Show statistics
"""

from dotenv import load_dotenv
load_dotenv('config.env')

# Initialize structured logging from environment
from utils.logging_config import init_from_environment
init_from_environment()

# Import and run CLI
from cli.main import main

if __name__ == '__main__':
    main()
