"""
gcontact_alpine - Google Contacts to Alpine address book sync.

Exports the Google Contacts of one account to the Alpine ``~/.addressbook``
file and keeps the two in step.
"""

__version__ = "0.1.0"
