#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Application entrypoint for MoodVault.

This file is intentionally minimal. It only boots the Textual UI app.
"""
from __future__ import annotations

import asyncio
from moodvault.ui import MoodVaultApp


def main() -> None:
    """Run the Textual application."""
    asyncio.run(MoodVaultApp().run_async())


if __name__ == "__main__":
    main()
