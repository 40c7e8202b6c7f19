from ctrdebug.context import Context
