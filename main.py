#!/usr/bin/env python3
"""
Auto Tax Engine - Entry Point

Vehicle retail and lease tax calculation for dealerships operating
across US states.

Usage:
    python main.py quote --file deal.json --notes
    python main.py quote --file deals.json --export-json quotes.json
    python main.py rules --state NC
    python main.py context --dealer IN --buyer OH --registration OH --perspective REGISTRATION_STATE
"""

from auto_tax_engine.cli import main

if __name__ == "__main__":
    main()
