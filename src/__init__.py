"""Warehouse Label Scanner.

Reads printed warehouse and shipping labels with Tesseract OCR, using a
rotation consensus to pick the best transcription, and extracts stock code,
sales order, PO, quantity and weight from the noisy text.
"""
