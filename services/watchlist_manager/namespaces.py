"""
Wiki namespace numbering and subject/talk pairing.

Non-negative even namespaces are subject namespaces; the odd number right
after each one is its talk namespace. Negative namespaces are virtual.
"""
import dataclasses
from typing import Iterable

from .entities import PageReference

NS_MEDIA = -2
NS_SPECIAL = -1
NS_MAIN = 0
NS_TALK = 1
NS_USER = 2
NS_USER_TALK = 3
NS_PROJECT = 4
NS_PROJECT_TALK = 5
NS_FILE = 6
NS_FILE_TALK = 7
NS_MEDIAWIKI = 8
NS_MEDIAWIKI_TALK = 9
NS_TEMPLATE = 10
NS_TEMPLATE_TALK = 11
NS_HELP = 12
NS_HELP_TALK = 13
NS_CATEGORY = 14
NS_CATEGORY_TALK = 15


class NamespaceInfo:
    """Namespace policy used to decide what can be watched."""

    def __init__(self, non_watchable: Iterable[int] = ()):
        """
        Args:
            non_watchable: Extra namespaces that can't be watched. Listing a
                subject namespace also excludes its talk namespace.
        """
        self.non_watchable = {self.get_subject(ns) for ns in non_watchable}

    @staticmethod
    def is_talk(namespace: int) -> bool:
        return namespace > NS_MAIN and namespace % 2 == 1

    @staticmethod
    def get_subject(namespace: int) -> int:
        if namespace < 0:
            return namespace
        return namespace - 1 if namespace % 2 == 1 else namespace

    @staticmethod
    def get_talk(namespace: int) -> int:
        if namespace < 0:
            raise ValueError(f"Namespace {namespace} has no talk namespace")
        return namespace if namespace % 2 == 1 else namespace + 1

    def is_watchable(self, namespace: int) -> bool:
        return namespace >= 0 and self.get_subject(namespace) not in self.non_watchable

    def can_have_talk_page(self, target: PageReference) -> bool:
        return target.namespace >= 0

    def get_subject_page(self, target: PageReference) -> PageReference:
        return dataclasses.replace(target, namespace=self.get_subject(target.namespace))

    def get_talk_page(self, target: PageReference) -> PageReference:
        return dataclasses.replace(target, namespace=self.get_talk(target.namespace))
