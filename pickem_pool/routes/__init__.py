"""JSON blueprints; each subpackage exposes ``bp``"""
