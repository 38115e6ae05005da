"""
Spreadsheet-driven call transcription and review.

Audio files in Cloud Storage are listed into a sheet, transcribed with the
Speech-to-Text long-running API, and then summarised, ranked and reviewed by a
chat-completion model.  Every step reads and writes sheet cells only, so the
sheet is the whole state of the pipeline.
"""
