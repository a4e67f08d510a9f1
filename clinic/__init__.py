"""Clinic application for the telehealth backend.

This package contains models, serializers, services, views and route
registrations implementing the appointment, medical-record and video
consultation API used by the front-end application.
"""
