"""
Access policy for pull request builds.

Decides whether an actor may trigger a build and whether the pull request's
target branch is allowed. Both checks are necessary conditions and are
evaluated independently.
"""

import logging
from typing import Awaitable, Callable, Iterable, Optional, Set

from prtrigger.models.trigger_config import TriggerConfig


logger = logging.getLogger(__name__)


def _tokens(value: str) -> Set[str]:
    return {token.lower() for token in value.split()}


class AccessPolicy:
    """
    Evaluates authorization against a job's trigger configuration.
    
    Login matching is case-insensitive against whitespace separated tokens.
    The configuration is read on every call, so a whitelist append is seen
    immediately by subsequent checks.
    """
    
    def __init__(
        self,
        config: TriggerConfig,
        persist: Optional[Callable[[TriggerConfig], Awaitable[None]]] = None
    ):
        """
        Initialize the access policy.
        
        Args:
            config: Trigger configuration of the owning job
            persist: Coroutine function saving the configuration of the
                owning job; called after a whitelist append
        """
        self.config = config
        self._persist = persist
    
    def is_admin(self, login: str) -> bool:
        return bool(login) and login.lower() in _tokens(self.config.admin_list)
    
    def is_whitelisted(self, login: str) -> bool:
        return bool(login) and login.lower() in _tokens(self.config.whitelist)
    
    def organizations(self) -> Set[str]:
        """Organizations whose members may trigger builds."""
        return set(self.config.orgs_list.split())
    
    def is_in_organizations(self, memberships: Iterable[str]) -> bool:
        allowed = _tokens(self.config.orgs_list)
        return any(org.lower() in allowed for org in memberships)
    
    def is_actor_authorized(self, login: str, memberships: Iterable[str] = ()) -> bool:
        """
        Check the actor against permit-all, admins, whitelist and organizations.
        
        Args:
            login: GitHub login of the actor
            memberships: Organizations the actor is known to belong to
        
        Returns:
            True if the actor may trigger a build
        """
        if self.config.permit_all:
            return True
        if self.is_admin(login):
            return True
        if self.is_whitelisted(login):
            return True
        return self.is_in_organizations(memberships)
    
    def is_branch_allowed(self, target_branch: str) -> bool:
        """
        Check the target branch against the configured allow-list.
        
        An empty allow-list (or one holding only blank patterns) allows
        every branch.
        """
        patterns = [
            pattern for pattern in self.config.white_list_target_branches
            if pattern.branch.strip()
        ]
        if not patterns:
            return True
        return any(pattern.matches(target_branch or "") for pattern in patterns)
    
    def is_authorized(
        self,
        login: str,
        memberships: Iterable[str],
        target_branch: str
    ) -> bool:
        """
        Full authorization check for one pull request event.
        
        Returns:
            True only if both the actor and the target branch are allowed
        """
        actor_ok = self.is_actor_authorized(login, memberships)
        branch_ok = self.is_branch_allowed(target_branch)
        return actor_ok and branch_ok
    
    async def add_to_whitelist(self, login: str) -> None:
        """
        Append a login to the whitelist and persist the configuration.
        
        The in-memory whitelist stays authoritative: a persistence failure
        is logged and not raised.
        
        Args:
            login: GitHub login to whitelist
        """
        if self.config.whitelist:
            self.config.whitelist = f"{self.config.whitelist} {login}"
        else:
            self.config.whitelist = login
        
        logger.info(f"Added {login} to whitelist")
        
        if self._persist is None:
            return
        
        try:
            await self._persist(self.config)
        except Exception as e:
            logger.error(f"Failed to save new whitelist: {e}", exc_info=True)
