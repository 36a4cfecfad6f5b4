"""API de reservas y administración de un estudio de fitness."""
