"""Customs Document OCR System.

Extracts structured fields from scanned Chilean customs documents by
running Tesseract OCR and applying per-document regex rule cascades.
"""
