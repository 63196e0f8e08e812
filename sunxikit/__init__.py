"""Tools for Allwinner (sunxi) SoCs: FEX and script.bin scripts, U-Boot DRAM settings, PIO dumps, SoC data and progress display."""

__version__ = "0.1.0"